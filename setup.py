from setuptools import setup, find_packages

setup(
    name="proofpad",
    version="0.1.0",
    description="Proofpad — desktop writing assistant with live LanguageTool suggestions",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.25",
        "PyQt5>=5.15",
        "pyspellchecker>=0.7",
    ],
    extras_require={
        "test": [
            "pytest>=7",
        ],
    },
    entry_points={
        "console_scripts": [
            "proofpad=proofpad.main:main",
        ],
    },
)
