"""
rv 命令行接口模块。
"""

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Optional

from rvman import __version__
from rvman.core.config_manager import ConfigManager
from rvman.core.exceptions import RvError
from rvman.core.version_manager import VersionManager
from rvman.core.version_request import VersionRequest
from rvman.utils.logger import get_logger, setup_logger

logger = get_logger()


def create_parser() -> argparse.ArgumentParser:
    """
    创建并配置命令行参数解析器。

    返回:
        配置好的 ArgumentParser 实例
    """
    parser = argparse.ArgumentParser(
        prog="rv",
        description="rv - Ruby 版本管理器",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  rv list                 列出已安装的 Ruby
  rv install 3.4.5        安装 Ruby 3.4.5
  rv install latest       安装最新版本
  rv pin 3.4.5            为当前项目固定 Ruby 版本
  rv find 3.4             查找满足 3.4 的已安装 Ruby
  rv run 3.4.5 -- -v      使用指定版本运行 ruby
  rv uninstall 3.4.5      卸载 Ruby 3.4.5
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="启用详细输出",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="配置文件路径",
    )

    parser.add_argument(
        "--log-file",
        action="store_true",
        help="同时把日志写入用户日志目录",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="命令",
        description="可用的 CLI 命令",
    )

    list_parser = subparsers.add_parser(
        "list",
        help="列出已安装的 Ruby",
    )
    list_parser.add_argument(
        "request",
        nargs="?",
        default=None,
        help="版本过滤条件（如 3.4）",
    )
    list_parser.add_argument(
        "--format",
        "-f",
        choices=["text", "json"],
        default="text",
        help="输出格式",
    )

    pin_parser = subparsers.add_parser(
        "pin",
        help="显示或设置当前项目的 Ruby 版本",
    )
    pin_parser.add_argument(
        "version",
        nargs="?",
        default=None,
        help="要固定的版本（省略则显示当前固定的版本）",
    )

    find_parser = subparsers.add_parser(
        "find",
        help="查找已安装的 Ruby",
    )
    find_parser.add_argument(
        "request",
        nargs="?",
        default=None,
        help="版本请求（省略则使用项目固定的版本）",
    )

    install_parser = subparsers.add_parser(
        "install",
        help="下载并安装指定版本",
    )
    install_parser.add_argument(
        "version",
        help="要安装的版本（完整版本号或 latest）",
    )
    install_parser.add_argument(
        "--install-dir",
        "-i",
        type=str,
        default=None,
        help="安装根目录（仅本次生效）",
    )
    install_parser.add_argument(
        "--tarball-path",
        type=str,
        default=None,
        help="本地 Ruby 压缩包路径",
    )

    if os.name == "posix":
        run_parser = subparsers.add_parser(
            "run",
            help="使用指定版本运行 ruby",
        )
        run_parser.add_argument(
            "version",
            help="要运行的版本",
        )
        run_parser.add_argument(
            "args",
            nargs=argparse.REMAINDER,
            help="传递给 ruby 的参数",
        )

    uninstall_parser = subparsers.add_parser(
        "uninstall",
        help="卸载指定版本",
    )
    uninstall_parser.add_argument(
        "version",
        help="要卸载的版本",
    )

    return parser


def run_cli(args: argparse.Namespace) -> int:
    """
    运行命令行接口。

    参数:
        args: 解析后的命令行参数

    返回:
        退出码（0 表示成功）
    """
    setup_logger(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_to_file=args.log_file,
    )

    if args.command is None:
        print("未指定命令。使用 --help 查看帮助信息。")
        return 1

    command_handlers = {
        "list": handle_list,
        "pin": handle_pin,
        "find": handle_find,
        "install": handle_install,
        "run": handle_run,
        "uninstall": handle_uninstall,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        print(f"未知命令: {args.command}")
        return 1

    try:
        return handler(args)
    except RvError as e:
        logger.debug(f"命令 {args.command} 失败", exc_info=True)
        print(f"错误: {e}")
        return 1


def _get_manager(args: argparse.Namespace) -> VersionManager:
    """
    根据命令行参数构造版本管理器。

    返回:
        VersionManager 实例
    """
    config_file = Path(args.config) if args.config else None
    config = ConfigManager(config_file).load_config()
    return VersionManager(config)


def _parse_optional(text: Optional[str]) -> Optional[VersionRequest]:
    return VersionRequest.parse(text) if text else None


def handle_list(args: argparse.Namespace) -> int:
    """
    处理 list 命令：列出已安装的 Ruby。

    当前项目会使用的版本以 * 标出。
    """
    version_manager = _get_manager(args)
    rubies = version_manager.list_rubies(_parse_optional(args.request))

    active = version_manager.resolver.resolve_local(
        version_manager.default_request(Path.cwd()), rubies, version_manager.platform
    )

    if args.format == "json":
        result = [dict(ruby.to_dict(), active=ruby == active) for ruby in rubies]
        print(json.dumps(result, indent=2))
        return 0

    if not rubies:
        print("未找到已安装的 Ruby")
        print(f"安装目录: {version_manager.config.install_root}")
        return 0

    for ruby in rubies:
        marker = "*" if ruby == active else " "
        print(f"{marker} ruby-{ruby.version:<16} {ruby.path}")
    return 0


def handle_pin(args: argparse.Namespace) -> int:
    """
    处理 pin 命令：显示或写入当前目录的 .ruby-version。
    """
    version_manager = _get_manager(args)
    project_dir = Path.cwd()

    if args.version is None:
        pinned = version_manager.pinned_version(project_dir)
        if pinned is None:
            print(f"{project_dir} 未固定 Ruby 版本")
            return 1
        print(pinned)
        return 0

    request = VersionRequest.parse(args.version)
    version_file = version_manager.pin(request, project_dir)
    print(f"已将 {version_file} 设置为 {request}")
    return 0


def handle_find(args: argparse.Namespace) -> int:
    """
    处理 find 命令：输出满足请求的 ruby 可执行文件路径。
    """
    version_manager = _get_manager(args)
    request = _parse_optional(args.request) or version_manager.default_request(Path.cwd())
    print(version_manager.executable_for(request))
    return 0


def handle_install(args: argparse.Namespace) -> int:
    """
    处理 install 命令：下载并安装指定版本。
    """
    version_manager = _get_manager(args)
    request = VersionRequest.parse(args.version)
    install_dir = Path(args.install_dir).expanduser() if args.install_dir else None
    tarball_path = Path(args.tarball_path).expanduser() if args.tarball_path else None

    ruby = version_manager.install(request, install_dir, tarball_path, status_callback=print)
    print(f"已安装 Ruby {ruby.version} 到 {ruby.path}")
    return 0


def handle_run(args: argparse.Namespace) -> int:
    """
    处理 run 命令：以 bin/ruby 替换当前进程。

    成功时不返回；bin/ruby 无法执行时返回 1。
    """
    version_manager = _get_manager(args)
    executable = str(version_manager.executable_for(VersionRequest.parse(args.version)))

    ruby_args = list(args.args)
    if ruby_args and ruby_args[0] == "--":
        ruby_args = ruby_args[1:]

    logger.debug(f"执行 {executable} {' '.join(ruby_args)}")
    try:
        os.execv(executable, [executable, *ruby_args])
    except OSError as e:
        logger.debug(f"执行 {executable} 失败", exc_info=True)
        print(f"错误: 无法执行 {executable}: {e}")
        return 1
    return 0


def handle_uninstall(args: argparse.Namespace) -> int:
    """
    处理 uninstall 命令：卸载指定版本。
    """
    version_manager = _get_manager(args)
    request = VersionRequest.parse(args.version)

    ruby = version_manager.uninstall(request, status_callback=print)
    print(f"已卸载 Ruby {ruby.version}")
    return 0
