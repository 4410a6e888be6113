"""Install the page session package."""

from setuptools import setup, find_packages

setup(
    name='pagesession',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "flask",
        "werkzeug",
        "redis",
        "fakeredis",
        "pyjwt",
        "python-json-logger",
    ],
    extras_require={
        "test": ["pytest"],
    },
    zip_safe=False
)
