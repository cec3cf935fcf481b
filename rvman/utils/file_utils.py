"""
文件工具模块。

提供原子写入等文件操作辅助函数。
"""

import os
from pathlib import Path


def atomic_write_text(file_path: Path, text: str) -> None:
    """
    原子写入文本到文件，防止写入中断导致文件损坏。

    参数:
        file_path: 目标文件路径
        text: 要写入的文本
    """
    temp_path = file_path.with_name(file_path.name + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(temp_path, file_path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
