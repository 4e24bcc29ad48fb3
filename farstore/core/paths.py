"""项目路径工具"""

from functools import lru_cache
from pathlib import Path


@lru_cache
def get_project_root() -> Path:
    """获取项目根目录

    从当前文件向上查找 pyproject.toml，找不到时回退到包的上级目录。
    """
    here = Path(__file__).resolve()
    for parent in here.parents:
        if (parent / "pyproject.toml").exists():
            return parent
    return here.parents[2]
