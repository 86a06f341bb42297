"""
Setup file.
"""

import os

from setuptools import setup

URL = "https://github.com/geno-ide/geno"
KEYWORDS = "c c++ build system ide msvc gcc clang compiler toolchain workspace"
HERE = os.path.dirname(os.path.abspath(__file__))



if __name__ == "__main__":
    setup(
        keywords=KEYWORDS,
        url=URL,
        include_package_data=True)
