# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import io

from setuptools import find_packages, setup

from cloudplan import __version__

readme = io.open("./cloudplan/README.rst", encoding="utf-8").read()

setup(
    name="pycloudplan",
    version=__version__,
    description="Power-aware VM placement and migration planning",
    long_description=readme,
    long_description_content_type="text/x-rst",
    license="MIT License",
    platforms=["Windows", "Linux", "macOS"],
    keywords=[
        "cloud-computing",
        "energy-efficiency",
        "resource-optimization",
        "simulator",
        "vm-consolidation",
        "vm-placement",
    ],
    classifiers=[
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: MacOS",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: POSIX",
        "Operating System :: Unix",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering",
    ],
    python_requires=">=3.7",
    install_requires=[
        "numpy",
        "PyYAML",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "cloudplan=cloudplan.cli:main",
        ],
    },
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={
        "cloudplan.scheduling": ["topologies/*/*.yml"],
    },
    zip_safe=False,
)
