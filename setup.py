
import io
import re
import setuptools

with io.open('src/nr/deepmap/__init__.py', encoding='utf8') as fp:
  version = re.search(r"__version__\s*=\s*'(.*)'", fp.read()).group(1)

with io.open('README.md', encoding='utf8') as fp:
  readme = fp.read()

requirements = ['PyYAML >=5.1']
extras_require = {}
extras_require['test'] = ['pytest >=6.0', 'hypothesis >=6.0']

setuptools.setup(
  name = 'nr.deepmap',
  version = version,
  author = 'Niklas Rosenstein',
  author_email = 'rosensteinniklas@gmail.com',
  description = 'A mapping that compares its keys by structure rather than by identity.',
  long_description = readme,
  long_description_content_type = 'text/markdown',
  url = 'https://git.niklasrosenstein.com/NiklasRosenstein/nr-python-libs',
  license = 'MIT',
  packages = setuptools.find_namespace_packages('src', include=['nr.*']),
  package_dir = {'': 'src'},
  include_package_data = False,
  install_requires = requirements,
  extras_require = extras_require,
  python_requires = '>=3.8',
  entry_points = {
    'console_scripts': [
      'nr-deepmap-bench = nr.deepmap.benchmark:main',
    ]
  }
)
