"""
rv 应用程序主入口点。
"""

import sys
from typing import Optional

from rvman.cli import create_parser, run_cli


def main(args: Optional[list[str]] = None) -> int:
    """
    应用程序主入口点。

    参数:
        args: 命令行参数。如果为 None，将使用 sys.argv[1:]。

    返回:
        退出码（0 表示成功，非零表示错误）。
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)
    return run_cli(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
