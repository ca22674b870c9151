from setuptools import find_packages, setup

setup(
    name="convert-desk",
    version="0.1.0",
    description="影像批次轉換工具的檔案清單與轉換狀態同步核心",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=[
        "Pillow>=11.2",
        "piexif>=1.1.3",
        "pillow-heif>=0.16",
        "httpx>=0.27",
        "platformdirs>=4.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "convert-desk=convert_desk.main:main",
        ],
    },
)
