"""
Setup file.
"""

from pathlib import Path

from setuptools import find_packages, setup

URL = "https://github.com/proc-util/proc-util"
KEYWORDS = "subprocess process pid kill supervision"
HERE = Path(__file__).parent


if __name__ == "__main__":
    setup(
        name="proc-util",
        version="1.0.0",
        description="Launch, inspect and terminate external processes on POSIX hosts.",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.10",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=["psutil"],
        extras_require={"test": ["pytest"]},
        entry_points={"console_scripts": ["proc-util=proc_util.cli:main"]},
        include_package_data=True)
