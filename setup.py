"""
Setup script for ez-term.
"""

from setuptools import setup, find_packages

# Read the README file
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read requirements
with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="ez-term",
    version="0.3.1",
    author="ezcorp",
    author_email="",
    description="Natural language to shell commands, with a verified self-updater",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/ezcorp-org/ez-term",
    packages=find_packages(exclude=("tests", "tests.*", "scripts", "scripts.*")),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Operating System :: Microsoft :: Windows",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Shells",
        "Topic :: System :: Software Distribution",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ez=ezterm.main:main",
        ],
    },
    scripts=["run.py"],
    keywords="shell terminal cli self-update",
    project_urls={
        "Bug Reports": "https://github.com/ezcorp-org/ez-term/issues",
        "Source": "https://github.com/ezcorp-org/ez-term",
    },
)
