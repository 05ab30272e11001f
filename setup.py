"""Install the cross-device sign-in service."""

from setuptools import setup, find_packages

setup(
    name='devicelink',
    version='1.0.0',
    packages=find_packages(include=['devicelink', 'devicelink.*'],
                           exclude=['*.tests']),
    python_requires='>=3.8',
    install_requires=[
        "flask",
        "redis",
        "pyjwt",
        "cryptography",
        "python-dateutil",
        "pytz",
        "celery",
        "google-auth",
        "requests",
        "cachecontrol",
        "python-json-logger",
    ],
    extras_require={
        'test': [
            "pytest",
            "fakeredis",
        ]
    },
    zip_safe=False
)
