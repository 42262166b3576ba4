from setuptools import setup, find_packages

setup(
    name='plc_tag_exchange',
    version='0.1.0',
    description='PLC tag exchange and real-time synchronization for Rockwell, Siemens and Beckhoff projects',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.10',
    install_requires=[
        'lxml>=4.9.0',
        'openpyxl>=3.1.0',
        'mcp[cli]>=1.2.0,<2',
        'fastapi>=0.110.0',
        'uvicorn>=0.29.0',
        'python-jose>=3.3.0',
        'pydantic>=2.0',
        'pydantic-settings>=2.0.0',
    ],
    extras_require={
        'dev': ['pytest>=7.0', 'httpx>=0.27.0'],
    },
    entry_points={
        'console_scripts': [
            'plc-tags-mcp=plc_tag_exchange.mcp_server:main',
            'plc-tags-sync=plc_tag_exchange.server:main',
        ],
    },
)
