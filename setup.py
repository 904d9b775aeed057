"""
Build script for htmlscrub.

Project metadata lives in pyproject.toml. This script only decides whether
the per-event modules get compiled with mypyc:

    HTMLSCRUB_USE_MYPYC=1 pip install .[mypyc]
"""

import os
import sys
from pathlib import Path

from setuptools import setup

# stack.py, serialize.py and text.py run once per token. policy.py,
# directives.py and tags.py stay interpreted: mypyc rejects the frozen
# slotted dataclasses that normalize themselves in __post_init__.
COMPILED_MODULES = ("stack", "serialize", "text")
SOURCE_DIR = Path("src") / "htmlscrub"


def mypyc_extensions() -> list:
    try:
        from mypyc.build import mypycify
    except ImportError:
        sys.exit("HTMLSCRUB_USE_MYPYC=1 needs mypyc: pip install htmlscrub[mypyc]")

    paths = [str(SOURCE_DIR / f"{name}.py") for name in COMPILED_MODULES]
    missing = [path for path in paths if not Path(path).exists()]
    if missing:
        sys.exit(f"Cannot compile, missing modules: {', '.join(missing)}")

    print(f"Compiling with mypyc: {', '.join(COMPILED_MODULES)}")
    return mypycify(paths, opt_level=os.environ.get("MYPYC_OPT_LEVEL", "3"))


if __name__ == "__main__":
    use_mypyc = os.environ.get("HTMLSCRUB_USE_MYPYC", "0") == "1"
    setup(ext_modules=mypyc_extensions() if use_mypyc else [])
