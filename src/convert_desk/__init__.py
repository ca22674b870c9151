"""convert-desk：影像批次轉換的檔案清單與狀態同步核心。"""

__version__ = "0.1.0"
