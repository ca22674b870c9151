"""預設設定值。"""

SETTINGS_NAMESPACE = "conversion-settings"

DEFAULT_SETTINGS = {
    "targetFormat": "webp",
    "qualityByFormat": {
        "webp": 80,
        "jpeg": 80,
        "png": 6,
        "avif": 80,
        "gif": 0,
        "bmp": 0,
        "tiff": 0,
        "error": 0,
    },
    "avifSpeed": 6,
    "preserveExif": True,
    "preserveTimestamps": True,
    "useSourceDirectory": False,
    "createSubfolder": False,
    "subfolderName": "converted",
    "urlFilesFallbackDirectory": "",
    "maxConcurrentConversions": 0,
}
