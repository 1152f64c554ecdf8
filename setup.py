import setuptools, sys, os

with open("README.rst", "r") as fh:
  long_description = fh.read()

# The kiosk image is Ubuntu 24.04LTS, which comes with Python 3.12.
python_version = sys.version_info
need_python_version = (3, 8)

if python_version < need_python_version:
  raise RuntimeError("kiosk_supervisor requires Python version %d.%d or higher"
                     % need_python_version)

sys.path.append(os.getcwd())
from kiosk_supervisor.version import *

setuptools.setup(
  name="kiosk_supervisor",
  version=KIOSK_VERSION,
  author="Naoyuki Tai",
  author_email="ntai@cleanwinner.com",
  description="Kiosk display supervisor",
  long_description=long_description,
  long_description_content_type="text/x-rst",
  packages=['kiosk_supervisor',
            'kiosk_supervisor.http',
            'kiosk_supervisor.lib',
            'kiosk_supervisor.supervisor'],
  include_package_data=True,
  install_requires=[
    'aiohttp>=3.9',
    'aiohttp-cors>=0.7.0',
  ],
  extras_require={
    'test': ['pytest'],
  },
  entry_points={
    'console_scripts': [
      'kiosk-supervisor=kiosk_supervisor.cli:main',
    ],
  },
  classifiers=[
    "Programming Language :: Python :: 3",
    "License :: OSI Approved :: MIT License",
    "Operating System :: POSIX :: Linux",
  ],
)
