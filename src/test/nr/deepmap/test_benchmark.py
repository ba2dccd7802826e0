
from nr.deepmap import NOT_FOUND
from nr.deepmap.benchmark import (BenchmarkConfig, BenchmarkResult, ReferenceMap,
  format_log_entry, format_markdown, format_table, main, make_key,
  run_benchmark, update_log_file)
from nr.deepmap.errors import BenchmarkConfigError
import datetime
import pytest

NOW = datetime.datetime(2020, 5, 1, 12, 30, tzinfo=datetime.timezone.utc)


def _results():
  return [
    BenchmarkResult(1000, 'object', 'set', 3.5, 0.25),
    BenchmarkResult(1000, 'object', 'get', 2.0, 0.5),
    BenchmarkResult(1000, 'string', 'set', 1.0, 0.75),
  ]


def test_reference_map_compares_objects_by_identity():
  m = ReferenceMap()
  a, b = {'a': 1}, {'a': 1}
  assert m.set(a, 1) is m
  assert m.get(a) == 1
  assert m.get(b) is NOT_FOUND
  assert m.has(a) and not m.has(b)
  assert m.size == 1
  assert not m.delete(b)
  assert m.delete(a)
  m.set(a, 1)
  m.clear()
  assert m.size == 0


def test_reference_map_compares_primitives_by_value():
  m = ReferenceMap()
  for index in range(5):
    m.set(make_key('string', index), index)
  assert [m.has(make_key('string', index)) for index in range(5)] == [True] * 5
  assert m.get(make_key('string', 3)) == 3
  assert all(m.delete(make_key('string', index)) for index in range(5))
  assert m.size == 0

  m.set(1, 'int').set(True, 'bool').set(None, 'none').set(b'x', 'bytes')
  assert m.get(1.0) == 'int'
  assert m.get(True) == 'bool'
  assert m.get(None) == 'none'
  assert m.get(bytes([120])) == 'bytes'
  assert not m.has(id(None))


def test_make_key():
  assert make_key('string', 3) == 'nirvana3'
  key = make_key('object', 3)
  assert key['index'] == 3
  assert key['band'] == 'Nirvana'
  assert make_key('object', 3) is not key
  with pytest.raises(ValueError):
    make_key('float', 3)


def test_run_benchmark():
  results = run_benchmark(50, 'object')
  assert [r.operation for r in results] == ['set', 'get', 'has', 'delete', 'size', 'clear']
  for result in results:
    assert result.iterations == 50
    assert result.key_type == 'object'
    assert result.deepmap_ms >= 0 and result.native_ms >= 0
    assert result.overhead_ms == round(result.deepmap_ms - result.native_ms, 2)


def test_result_overhead():
  assert BenchmarkResult(10, 'string', 'set', 3.5, 0.25).overhead_ms == 3.25


def test_config_defaults():
  config = BenchmarkConfig()
  assert config.iterations == [1000, 10000, 100000]
  assert config.key_types == ['object', 'string']
  assert config.log_file is None
  config.validate()


def test_config_from_dict():
  config = BenchmarkConfig.from_dict({'iterations': [10], 'key_types': ['string']})
  assert config.iterations == [10]
  assert config.key_types == ['string']

  for data in [
      {'iterations': []},
      {'iterations': [0]},
      {'iterations': ['10']},
      {'iterations': 10},
      {'key_types': ['float']},
      {'log_file': 42},
      {'unknown': 1},
      ['iterations']]:
    with pytest.raises(BenchmarkConfigError):
      BenchmarkConfig.from_dict(data)


def test_config_load(tmp_path):
  filename = tmp_path / 'bench.yml'
  filename.write_text('iterations: [5, 10]\nkey_types: [object]\nlog_file: bench.log\n')
  config = BenchmarkConfig.load(str(filename))
  assert config == BenchmarkConfig([5, 10], ['object'], 'bench.log')

  filename.write_text('')
  assert BenchmarkConfig.load(str(filename)) == BenchmarkConfig()

  filename.write_text('iterations: [5\n')
  with pytest.raises(BenchmarkConfigError):
    BenchmarkConfig.load(str(filename))

  with pytest.raises(BenchmarkConfigError):
    BenchmarkConfig.load(str(tmp_path / 'missing.yml'))


def test_format_table():
  text = format_table(_results())
  assert text.startswith('Key Type: Object (1,000 iterations)\nOperation')
  assert 'Key Type: String (1,000 iterations)' in text
  assert 'set        3.5           0.25      3.25' in text


def test_format_markdown():
  text = format_markdown(_results())
  assert text.count('#### 1,000 Iterations') == 1
  assert '##### Key Type: Object' in text
  assert '| Operation | DeepMap (ms) | Map (ms) | Overhead (ms) |' in text
  assert '| get | 2.0 | 0.5 | 1.5 |' in text


def test_log_file(tmp_path):
  filename = str(tmp_path / 'benchmark.log')
  update_log_file(filename, _results()[:1], now=NOW)
  later = NOW + datetime.timedelta(days=1)
  update_log_file(filename, _results()[2:], now=later)
  with open(filename) as fp:
    content = fp.read()
  assert content == (
    format_log_entry(_results()[2:], later) + '\n\n' +
    format_log_entry(_results()[:1], NOW) + '\n')
  assert content.startswith('2020-05-02T12:30:00+00:00\nkey: String | iterations: 1000 | '
    'operation: set | deepmap: 1.0ms | map: 0.75ms | overhead: 0.25ms')


def test_main(tmp_path, capsys):
  log_file = tmp_path / 'bench.log'
  assert main(['-n', '20', '-k', 'string', '--log-file', str(log_file), '--markdown']) == 0
  out = capsys.readouterr().out
  assert '#### 20 Iterations' in out
  assert '##### Key Type: String' in out
  assert 'Object' not in out
  assert log_file.read_text().count('key: String') == 6


def test_main_invalid_config(tmp_path, capsys):
  config = tmp_path / 'bench.yml'
  config.write_text('key_types: [float]\n')
  with pytest.raises(SystemExit) as excinfo:
    main(['-c', str(config)])
  assert excinfo.value.code == 2
  assert 'unknown key type' in capsys.readouterr().err
