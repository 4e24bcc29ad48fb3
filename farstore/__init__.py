"""Farstore 注册表同步服务"""

__version__ = "0.1.0"
