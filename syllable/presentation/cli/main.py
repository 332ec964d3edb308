#!/usr/bin/env python3
"""
Syllable - CLI Main Entry Point
CLIアプリケーションのエントリーポイント
"""

import argparse
from pathlib import Path

from colorama import init as colorama_init

from syllable.domain import Status
from syllable.infrastructure.audio import list_devices

from .controller import CLIController
from .view import CLIView


def parse_args() -> argparse.Namespace:
    """CLI引数を解析する"""
    parser = argparse.ArgumentParser(
        prog="syllable",
        description="Learn how your classmates pronounce their names",
    )
    parser.add_argument(
        "-l",
        "--list-devices",
        action="store_true",
        help="List available audio devices and exit",
    )
    parser.add_argument(
        "-d",
        "--device",
        type=int,
        default=None,
        metavar="ID",
        help="Audio input device ID (use --list-devices to see available devices)",
    )
    parser.add_argument(
        "-o",
        "--output-device",
        type=int,
        default=None,
        metavar="ID",
        help="Audio output device ID",
    )
    parser.add_argument(
        "-c",
        "--config-dir",
        type=Path,
        default=None,
        metavar="DIR",
        help="Directory containing config.toml (default: current directory)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    status_choices = [status.value for status in Status]

    roster = subparsers.add_parser("roster", help="Show your classmates")
    filters = roster.add_mutually_exclusive_group()
    filters.add_argument("-s", "--search", default="", help="Filter by name, program or year")
    filters.add_argument(
        "--status", choices=status_choices, default=None, help="Filter by your status"
    )
    roster.add_argument(
        "-w", "--watch", action="store_true", help="Keep the roster updated"
    )

    play = subparsers.add_parser("play", help="Play how a classmate says their name")
    play.add_argument("user_id")
    play.add_argument(
        "--download", action="store_true", help="Save the recording instead of playing"
    )

    mark = subparsers.add_parser("mark", help="Mark a classmate's name")
    mark.add_argument("user_id")
    mark.add_argument("status", choices=status_choices)

    practice = subparsers.add_parser(
        "practice", help="Record yourself saying a classmate's name"
    )
    practice.add_argument("user_id")

    onboard = subparsers.add_parser("onboard", help="Create your profile")
    onboard.add_argument("--first-name", required=True)
    onboard.add_argument("--middle-name", default=None)
    onboard.add_argument("--last-name", required=True)
    onboard.add_argument("--country-code", default=None)
    onboard.add_argument("--country-name", default=None)
    onboard.add_argument("--picture", default=None, metavar="PATH")

    subparsers.add_parser("profile", help="Show your profile")
    subparsers.add_parser("logout", help="Sign out")

    args = parser.parse_args()
    if args.command is None and not args.list_devices:
        parser.error("a command is required")
    return args


def main() -> None:
    """エントリーポイント"""
    # CLI引数解析
    args = parse_args()

    # colorama初期化
    colorama_init(autoreset=True)

    # デバイス一覧表示モード
    if args.list_devices:
        CLIView.show_devices(list_devices())
        return

    # CLIController起動
    controller = CLIController(args)
    controller.run()


if __name__ == "__main__":
    main()
