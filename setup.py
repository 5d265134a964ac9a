#!/usr/bin/env python3

"""
Setup module for pxebootstrap
"""

import os

from setuptools import find_packages, setup

VERSION = "1.0.0"


def read_readme_file() -> str:
    """
    read the contents of your README file
    """
    this_directory = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(this_directory, "README.md"), encoding="utf-8") as f:
        return f.read()


#####################################################################
## Actual Setup.py Script ###########################################
#####################################################################


if __name__ == "__main__":
    setup(
        name="pxebootstrap",
        version=VERSION,
        description="Prepare PXE boot menus and kernels from a directory of ISO images",
        long_description=read_readme_file(),
        long_description_content_type="text/markdown",
        license="GPLv2+",
        classifiers=[
            "Development Status :: 4 - Beta",
            "License :: OSI Approved :: GNU General Public License v2 or later (GPLv2+)",
            "Programming Language :: Python :: 3",
            "Topic :: System :: Installation/Setup",
            "Topic :: System :: Systems Administration",
            "Intended Audience :: System Administrators",
            "Natural Language :: English",
            "Operating System :: POSIX :: Linux",
        ],
        keywords=["pxe", "autoinstallation", "tftp", "grub", "pxelinux", "provisioning"],
        python_requires=">=3.9",
        install_requires=[
            "pyyaml",
            "netaddr",
            "Cheetah3",
            "schema",
            "python-dotenv",
        ],
        extras_require={
            "lint": [
                "pyflakes",
                "pycodestyle",
                "pylint",
                "black",
                "types-PyYAML",
                "types-netaddr",
                "types-setuptools",
                "isort",
            ],
            "test": [
                "pytest>6",
                "pytest-cov",
                "coverage",
                "pytest-mock>3.3.0",
            ],
        },
        packages=find_packages(exclude=["*tests*", "docs", "bin"]),
        package_data={
            "pxebootstrap.data": ["logging_config.conf"],
            "pxebootstrap.data.templates": ["*.template"],
        },
        include_package_data=True,
        entry_points={
            "console_scripts": [
                "pxebootstrap = pxebootstrap.cli:main",
            ]
        },
    )
