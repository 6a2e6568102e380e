from setuptools import find_packages, setup

with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()

requirements = [
    "PyYAML>=6.0.3",
    "python-dotenv>=1.0.0",
    "rich>=13.0.0",
    "psutil>=5.9.0",
]

setup(
    name="kaspa-planner",
    version="0.1.0",
    description="Resource planning and configuration validation for Kaspa All-in-One deployments",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["kaspa_planner", "kaspa_planner.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Installation/Setup",
        "Topic :: System :: Systems Administration",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={"test": ["pytest>=7.0"]},
    entry_points={
        "console_scripts": [
            "kaspa-planner=kaspa_planner.cli:main",
        ],
    },
    include_package_data=True,
)
