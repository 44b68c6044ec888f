"""Setup configuration for actions_tracker"""

from setuptools import setup, find_packages

setup(
    name="github-actions-tracker",
    version="0.1.0",
    description=(
        "CLI dashboard for GitHub Actions: cached workflow runs, success rate, "
        "daily activity and deployments."
    ),
    author="GitHub Actions Tracker Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "actions-tracker=actions_tracker.main:main",
        ],
    },
)
