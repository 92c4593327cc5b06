from pathlib import Path

from setuptools import setup

about = {}
exec((Path(__file__).parent / "logfanout" / "_version.py").read_text(), about)

setup(
    name="logfanout",
    long_description="logfanout writes each log call to the console, a rotating local file and Application Insights.",
    version=about["__version__"],
    packages=[
        "logfanout",
        "logfanout.commands",
        "logfanout.data_classes",
        "logfanout.diagnostics",
        "logfanout.sinks",
        "logfanout.telemetry",
    ],
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "click>=8.1.0,<9.0.0",
        "pyyaml>=6.0.0,<7.0.0",
        "requests>=2.31.0,<3.0.0",
        "tqdm>=4.65.0,<5.0.0",
        "humanfriendly>=10.0.0,<11.0.0",
        "beartype>=0.17.0,<1.0.0",
    ],
    extras_require={
        # preinstalled SDK is used as-is instead of being downloaded into the cache
        "telemetry": ["applicationinsights==0.11.10"],
        "tests": ["pytest", "pytest-mock", "requests-mock"],
    },
    entry_points="""
        [console_scripts]
        logfanout=logfanout.cli:cli
    """,
)
