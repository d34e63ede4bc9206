from setuptools import setup, find_packages

# Setup configuration
setup(
    name="keyfx",
    version="0.1.0",
    description="keyfx Keyboard Animation Host",
    author="Go-Kart Team",
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    install_requires=[
        'flask',
        'flask-socketio',
        'flask-cors',
        'python-engineio',
        'python-socketio',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'keyfx=keyfx.app:main',
        ],
    },
    python_requires='>=3.8',
)
