##############################
# BUILDING PYTHON PACKAGE PYPI
##############################
#
# python3 -m pip install --user --upgrade setuptools wheel
# python3 setup.py sdist
# python3 -m pip install --user --upgrade twine
# /usr/local/bin/twine check dist/*
# /usr/local/bin/twine upload dist/*
#
##############################

import os
import io

from setuptools import setup, find_packages

# in development set version to none and ...
PYPI_VERSION = "0.1.0"

this_directory = os.path.abspath(os.path.dirname(__file__))

# Place install_requires into the text file "requirements.txt"
with open(os.path.join(this_directory, "requirements.txt")) as f2:
    requirements = f2.read().strip().splitlines()

packs = find_packages(include=["tinero", "tinero.*"])

long_description = ""
if os.path.exists(os.path.join(this_directory, "README.md")):
    with io.open(os.path.join(this_directory, "README.md"), encoding="utf-8") as f:
        long_description = f.read()


if __name__ == "__main__":
    setup(
        name="tinero",
        version=PYPI_VERSION,
        license="GPLv3",
        description="Erosion and sediment transport engine for TIN based landscape evolution models",
        keywords=[
            "python",
            "sediment-transport",
            "model",
            "landscape",
            "landscape-evolution",
            "erosion-process",
            "stratigraphy",
            "science",
        ],
        long_description=long_description,
        long_description_content_type="text/markdown",
        packages=packs,
        install_requires=requirements,
        extras_require={"test": ["pytest"]},
        python_requires=">=3.7",
        classifiers=[
            "Intended Audience :: Science/Research",
            "Operating System :: Unix",
            "Operating System :: MacOS",
            "Programming Language :: Python :: 3",
        ],
    )
