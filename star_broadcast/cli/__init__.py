"""
命令行工具
"""

from .main import build_parser, config_from_args, main

__all__ = [
    "build_parser",
    "config_from_args",
    "main",
]
