# setup.py
from setuptools import setup, find_packages

# Version is defined here to avoid import issues during build
__version__ = "1.0.0"

DRIVE_REQUIRES = [
    'google-api-python-client>=2.100.0',
    'google-auth>=2.20.0',
    'google-auth-oauthlib>=1.0.0',
    'httplib2>=0.20.0',
]

setup(
    name='drivedup',
    version=__version__,
    description='Resumable, checkpointed duplication and verification of remote folder trees.',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    author='Equitania Software GmbH',
    author_email='info@equitania.de',
    url='https://github.com/equitania/drivedup',
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    install_requires=[
        'click>=8.1.0',
        'rich>=13.0.0',
        'PyYAML>=6.0',
        'pydantic>=2.0',
    ],
    extras_require={
        'drive': DRIVE_REQUIRES,
        'test': [
            'pytest>=7.0',
        ] + DRIVE_REQUIRES,
    },
    entry_points={
        'console_scripts': [
            'drivedup = drivedup.cli:cli',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "License :: OSI Approved :: GNU Affero General Public License v3",
        "Operating System :: OS Independent",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Archiving :: Backup",
        "Topic :: Utilities",
    ],
    python_requires='>=3.10',
    keywords='google drive, folder copy, backup, resumable, checkpoint',
)
