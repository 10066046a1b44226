"""Setup configuration for the gbancord Discord bot."""

from setuptools import setup, find_packages

setup(
    name="gbancord",
    version="0.0.1",
    description="A Discord bot that propagates global bans across every server it is in",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord",
        "aiosqlite",
        "PyYAML",
        "python-dotenv",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "gbancord=gbancord.main:main",
        ],
    },
)
