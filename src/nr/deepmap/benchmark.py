# -*- coding: utf8 -*-
# Copyright (c) 2020 Niklas Rosenstein
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to
# deal in the Software without restriction, including without limitation the
# rights to use, copy, modify, merge, publish, distribute, sublicense, and/or
# sell copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING
# FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS
# IN THE SOFTWARE.

"""
Benchmarks the #DeepMap against a native map that compares primitive keys by
value and every other key by reference (see #ReferenceMap). Keys
are either dictionaries (fresh copies of a fixture with an `index` member)
or strings. Every run times the `set`, `get`, `has` and `delete` operations
over all keys followed by reading the `size` and calling `clear()`.
"""

from .errors import BenchmarkConfigError
from .map import NOT_FOUND, DeepMap
import argparse
import dataclasses
import datetime
import io
import logging
import os
import sys
import time
import typing as t
import yaml

logger = logging.getLogger(__name__)

KEY_TYPES = ('object', 'string')
OPERATIONS = ('set', 'get', 'has', 'delete')

NIRVANA_KEY = {
  'band': 'Nirvana',
  'origin': 'Aberdeen, Washington',
  'formed': 1987,
  'members': ['Kurt Cobain', 'Krist Novoselic', 'Dave Grohl'],
}

NIRVANA_VALUE = {
  'albums': ['Bleach', 'Nevermind', 'In Utero'],
  'top_songs': {
    1: 'Smells Like Teen Spirit',
    2: 'Come as You Are',
    3: 'Heart-Shaped Box',
  },
}


#: Key types that the #ReferenceMap compares by value.
PRIMITIVE_TYPES = (str, bytes, int, float, type(None))


class ReferenceMap(object):
  """
  A map that compares primitive keys (strings, bytes, numbers, booleans and
  `None`) by value and any other key by identity, exposing the same
  operations as the #DeepMap. Used as the baseline of the benchmark.
  """

  def __init__(self):
    self._data = {}

  @staticmethod
  def _slot(key):  # type: (Any) -> Tuple[Any, ...]
    # Tagged so that an id() never collides with an integer key.
    if isinstance(key, PRIMITIVE_TYPES):
      return ('value', type(key) is bool, key)
    return ('ref', id(key))

  @property
  def size(self):  # type: () -> int
    return len(self._data)

  def set(self, key, value):  # type: (Any, Any) -> ReferenceMap
    self._data[self._slot(key)] = (key, value)
    return self

  def get(self, key, default=NOT_FOUND):  # type: (Any, Any) -> Any
    pair = self._data.get(self._slot(key))
    return default if pair is None else pair[1]

  def has(self, key):  # type: (Any) -> bool
    return self._slot(key) in self._data

  def delete(self, key):  # type: (Any) -> bool
    return self._data.pop(self._slot(key), None) is not None

  def clear(self):  # type: () -> None
    self._data.clear()


@dataclasses.dataclass
class BenchmarkConfig:
  iterations: t.List[int] = dataclasses.field(default_factory=lambda: [1000, 10000, 100000])
  key_types: t.List[str] = dataclasses.field(default_factory=lambda: list(KEY_TYPES))
  log_file: t.Optional[str] = None

  @classmethod
  def from_dict(cls, data: t.Dict[str, t.Any]) -> 'BenchmarkConfig':
    if not isinstance(data, dict):
      raise BenchmarkConfigError('expected a mapping, got {}'.format(type(data).__name__))
    names = set(f.name for f in dataclasses.fields(cls))
    unknown = sorted(str(x) for x in set(data) - names)
    if unknown:
      raise BenchmarkConfigError('unknown configuration key(s): {}'.format(', '.join(unknown)))
    config = cls(**data)
    config.validate()
    return config

  @classmethod
  def load(cls, filename: str) -> 'BenchmarkConfig':
    """
    Loads the configuration from a YAML file.
    """

    try:
      with io.open(filename, encoding='utf8') as fp:
        data = yaml.safe_load(fp)
    except OSError as exc:
      raise BenchmarkConfigError('can not read {!r}: {}'.format(filename, exc))
    except yaml.YAMLError as exc:
      raise BenchmarkConfigError('invalid YAML in {!r}: {}'.format(filename, exc))
    return cls.from_dict({} if data is None else data)

  def validate(self) -> None:
    if not isinstance(self.iterations, list) or not self.iterations:
      raise BenchmarkConfigError('iterations must be a non-empty list')
    for count in self.iterations:
      if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise BenchmarkConfigError('iterations must be positive integers, got {!r}'.format(count))
    if not isinstance(self.key_types, list) or not self.key_types:
      raise BenchmarkConfigError('key_types must be a non-empty list')
    for key_type in self.key_types:
      if key_type not in KEY_TYPES:
        raise BenchmarkConfigError('unknown key type {!r} (choose from {})'.format(
          key_type, ', '.join(KEY_TYPES)))
    if self.log_file is not None and not isinstance(self.log_file, str):
      raise BenchmarkConfigError('log_file must be a string')


@dataclasses.dataclass
class BenchmarkResult:
  iterations: int
  key_type: str
  operation: str
  deepmap_ms: float
  native_ms: float

  @property
  def overhead_ms(self) -> float:
    return round(self.deepmap_ms - self.native_ms, 2)


def make_key(key_type, index):  # type: (str, int) -> Any
  if key_type == 'object':
    return dict(NIRVANA_KEY, index=index)
  elif key_type == 'string':
    return 'nirvana{}'.format(index)
  raise ValueError('unknown key type: {!r}'.format(key_type))


def make_value(index):  # type: (int) -> Dict[str, Any]
  return dict(NIRVANA_VALUE, id=index)


def time_task(task):  # type: (Callable[[], Any]) -> float
  """
  Runs *task* and returns the elapsed time in milliseconds.
  """

  start = time.perf_counter()
  task()
  return round((time.perf_counter() - start) * 1000.0, 2)


def time_operation(container, operation, key_type, iterations):
  # type: (Union[DeepMap, ReferenceMap], str, str, int) -> float
  method = getattr(container, operation)
  def task():
    for index in range(iterations):
      key = make_key(key_type, index)
      if operation == 'set':
        method(key, make_value(index))
      else:
        method(key)
  return time_task(task)


def run_benchmark(iterations, key_type):  # type: (int, str) -> List[BenchmarkResult]
  deepmap = DeepMap()
  native = ReferenceMap()
  results = []

  def add(operation, deepmap_ms, native_ms):
    logger.debug('%s key, %s: deepmap %sms, map %sms', key_type, operation, deepmap_ms, native_ms)
    results.append(BenchmarkResult(iterations, key_type, operation, deepmap_ms, native_ms))

  for operation in OPERATIONS:
    add(operation,
      time_operation(deepmap, operation, key_type, iterations),
      time_operation(native, operation, key_type, iterations))

  add('size', time_task(lambda: deepmap.size), time_task(lambda: native.size))
  add('clear', time_task(deepmap.clear), time_task(native.clear))
  return results


def _rows(results):
  return [(r.operation, str(r.deepmap_ms), str(r.native_ms), str(r.overhead_ms)) for r in results]


def _groups(results):  # type: (List[BenchmarkResult]) -> Iterator[Tuple[int, str, List[BenchmarkResult]]]
  groups = {}
  for result in results:
    groups.setdefault((result.iterations, result.key_type), []).append(result)
  for (iterations, key_type), group in groups.items():
    yield iterations, key_type, group


HEADERS = ('Operation', 'DeepMap (ms)', 'Map (ms)', 'Overhead (ms)')


def format_table(results):  # type: (List[BenchmarkResult]) -> str
  """
  Formats the results as plain text tables, one per iteration count and key
  type.
  """

  blocks = []
  for iterations, key_type, group in _groups(results):
    rows = [HEADERS] + _rows(group)
    widths = [max(len(row[i]) for row in rows) for i in range(len(HEADERS))]
    lines = ['Key Type: {} ({:,} iterations)'.format(key_type.capitalize(), iterations)]
    for index, row in enumerate(rows):
      lines.append('  '.join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())
      if index == 0:
        lines.append('  '.join('-' * width for width in widths))
    blocks.append('\n'.join(lines))
  return '\n\n'.join(blocks)


def format_markdown(results):  # type: (List[BenchmarkResult]) -> str
  blocks = []
  last_iterations = None
  for iterations, key_type, group in _groups(results):
    if iterations != last_iterations:
      blocks.append('#### {:,} Iterations'.format(iterations))
      last_iterations = iterations
    lines = ['##### Key Type: {}'.format(key_type.capitalize()), '']
    lines.append('| ' + ' | '.join(HEADERS) + ' |')
    lines.append('|' + '|'.join('---' for _ in HEADERS) + '|')
    for row in _rows(group):
      lines.append('| ' + ' | '.join(row) + ' |')
    blocks.append('\n'.join(lines))
  return '\n\n'.join(blocks)


def format_log_entry(results, now=None):  # type: (List[BenchmarkResult], Optional[datetime.datetime]) -> str
  if now is None:
    now = datetime.datetime.now(datetime.timezone.utc)
  lines = [now.isoformat()]
  for r in results:
    lines.append('key: {} | iterations: {} | operation: {} | deepmap: {}ms | map: {}ms | overhead: {}ms'.format(
      r.key_type.capitalize(), r.iterations, r.operation, r.deepmap_ms, r.native_ms, r.overhead_ms))
  return '\n'.join(lines)


def update_log_file(filename, results, now=None):
  # type: (str, List[BenchmarkResult], Optional[datetime.datetime]) -> None
  """
  Prepends a log entry for *results* to the file *filename*. Older entries
  are kept below the new one.
  """

  existing = ''
  if os.path.isfile(filename):
    with io.open(filename, encoding='utf8') as fp:
      existing = fp.read()
  content = '{}\n\n{}'.format(format_log_entry(results, now), existing).strip()
  with io.open(filename, 'w', encoding='utf8') as fp:
    fp.write(content + '\n')


def get_argument_parser(prog=None):
  parser = argparse.ArgumentParser(prog=prog, description=main.__doc__)
  parser.add_argument('-c', '--config', metavar='FILE',
    help='Load the benchmark configuration from a YAML file. Options passed '
         'on the command line take precedence.')
  parser.add_argument('-n', '--iterations', type=int, action='append', metavar='N',
    help='Number of keys to process per operation. Can be specified multiple '
         'times. Defaults to 1000, 10000 and 100000.')
  parser.add_argument('-k', '--key-type', action='append', choices=KEY_TYPES,
    help='The type of keys to benchmark. Can be specified multiple times. '
         'Defaults to all key types.')
  parser.add_argument('--log-file', metavar='PATH',
    help='Prepend the results to this log file.')
  parser.add_argument('--markdown', action='store_true',
    help='Print the results as Markdown tables.')
  parser.add_argument('-v', '--verbose', action='count', default=0,
    help='Increase the log level. Can be specified up to two times.')
  return parser


def main(argv=None, prog=None):
  """
  Benchmark the DeepMap against a map that compares keys by reference.
  """

  parser = get_argument_parser(prog)
  args = parser.parse_args(argv)

  if args.verbose == 0:
    level = logging.WARNING
  elif args.verbose == 1:
    level = logging.INFO
  else:
    level = logging.DEBUG
  logging.basicConfig(format='%(levelname)s [%(name)s]: %(message)s', level=level)

  try:
    config = BenchmarkConfig.load(args.config) if args.config else BenchmarkConfig()
    if args.iterations:
      config.iterations = args.iterations
    if args.key_type:
      config.key_types = args.key_type
    if args.log_file:
      config.log_file = args.log_file
    config.validate()
  except BenchmarkConfigError as exc:
    parser.error(str(exc))

  results = []
  for iterations in config.iterations:
    for key_type in config.key_types:
      logger.info('benchmarking %s keys with %d iterations', key_type, iterations)
      results += run_benchmark(iterations, key_type)

  print(format_markdown(results) if args.markdown else format_table(results))

  if config.log_file:
    update_log_file(config.log_file, results)
    logger.info('results written to %s', config.log_file)

  return 0


if __name__ == '__main__':
  sys.exit(main())
