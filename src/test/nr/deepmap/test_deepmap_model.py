
from hypothesis import given, settings, strategies as st
from nr.deepmap import NOT_FOUND, DeepMap
from nr.deepmap.hashing import encode
import copy

primitives = st.one_of(
  st.none(),
  st.booleans(),
  st.integers(),
  st.floats(allow_nan=True, allow_infinity=True),
  st.text(max_size=8),
  st.binary(max_size=8),
)

keys = st.recursive(
  primitives,
  lambda children: st.one_of(
    st.lists(children, max_size=4),
    st.lists(children, max_size=4).map(tuple),
    st.dictionaries(st.text(max_size=4), children, max_size=4),
    st.frozensets(primitives, max_size=4),
  ),
  max_leaves=12,
)

operations = st.lists(st.one_of(
  st.tuples(st.just('set'), keys, st.integers()),
  st.tuples(st.just('get'), keys, st.none()),
  st.tuples(st.just('has'), keys, st.none()),
  st.tuples(st.just('delete'), keys, st.none()),
), min_size=1, max_size=60)


@settings(max_examples=200, deadline=None)
@given(operations)
def test_deepmap_behaves_like_model(ops):
  # For the generated key types, the canonical encoding identifies a key
  # structurally, so a plain dict keyed by the encoding is the reference.
  m = DeepMap()
  model = {}

  for op, key, value in ops:
    token = encode(key)
    if op == 'set':
      assert m.set(key, value) is m
      if token in model:
        model[token] = (model[token][0], value)
      else:
        model[token] = (key, value)
    elif op == 'get':
      expected = model[token][1] if token in model else NOT_FOUND
      assert m.get(copy.deepcopy(key)) == expected
    elif op == 'has':
      assert m.has(copy.deepcopy(key)) is (token in model)
    else:
      assert m.delete(key) is (token in model)
      model.pop(token, None)
    assert m.size == len(model)

  assert [encode(k) for k in m] == list(model)
  assert [v for _k, v in m.entries()] == [v for _k, v in model.values()]


@settings(max_examples=50, deadline=None)
@given(st.lists(keys, unique_by=encode, max_size=200))
def test_round_trip(distinct_keys):
  m = DeepMap()
  for index, key in enumerate(distinct_keys):
    m.set(key, index)
  assert m.size == len(distinct_keys)
  for index, key in enumerate(distinct_keys):
    assert m.get(copy.deepcopy(key)) == index


def test_round_trip_many_keys():
  m = DeepMap()
  keys = []
  for index in range(2000):
    if index % 2:
      keys.append('nirvana{}'.format(index))
    else:
      keys.append({'band': 'Nirvana', 'index': index, 'members': [index, str(index)]})
  for index, key in enumerate(keys):
    m.set(key, index)
  assert m.size == len(keys)
  for index, key in enumerate(keys):
    assert m.get(copy.deepcopy(key)) == index
  assert [k for k, _v in m.entries()] == keys
