"""Setup script for the Matrix to OLED bridge."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, separating test dependencies
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    content = requirements_file.read_text().strip()
    lines = content.split("\n")

    for line in lines:
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="matrix-oled",
    version="0.1.0",
    description="Relay Matrix chat messages to an SH1106 OLED on a Raspberry Pi",
    long_description=long_description,
    long_description_content_type="text/markdown",
    # Package configuration
    packages=find_packages(include=["matrix_oled", "matrix_oled.*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Topic :: Communications :: Chat",
        "Topic :: System :: Hardware",
        "Framework :: AsyncIO",
    ],
    keywords="matrix chat oled sh1106 i2c raspberry-pi async",
    entry_points={
        "console_scripts": [
            "matrix-oled=matrix_oled.main:run",
        ],
    },
    data_files=[
        ("share/matrix-oled/config", ["config/config.yaml.example"]),
    ],
    zip_safe=False,
    platforms=["linux"],
)
