"""Install the noteboard package."""

from setuptools import setup, find_packages

setup(
    name='noteboard',
    version='0.1.0',
    packages=find_packages(include=['noteboard', 'noteboard.*'],
                           exclude=['*.tests', '*.tests.*']),
    package_data={'noteboard': ['templates/mail/*.txt']},
    install_requires=[
        "flask>=2.2",
        "flask-sqlalchemy>=3.0",
        "sqlalchemy>=2.0",
        "wtforms>=3.0",
        "email-validator",
        "bcrypt",
        "pytz",
        "python-dateutil",
        "python-json-logger>=3.1",
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis",
            "mimesis",
        ]
    },
    python_requires='>=3.9',
    zip_safe=False
)
