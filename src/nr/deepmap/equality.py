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

""" Structural equality of key values. """

from .errors import UnsupportedKeyError
from .hashing import (NUMBER, LIST, TUPLE, MAPPING, SET, DATACLASS, OPAQUE,
  category_of, compared_fields)
import math

_MISSING = object()


def deep_equal(a, b):  # type: (Any, Any) -> bool
  """
  Compares *a* and *b* by their structure. Values of different categories
  (see #nr.deepmap.hashing.category_of()) are never equal. Numbers compare
  by value with NaN being equal to NaN, lists and tuples compare element-wise,
  mappings and sets compare their members regardless of order and dataclass
  instances compare their fields if they are of the same type. Other objects
  must be of the same type and compare equal with `==`.

  If `deep_equal(a, b)` is true, #nr.deepmap.hashing.encode() returns the
  same encoding for both values.
  """

  try:
    return _equal(a, b)
  except RecursionError:
    raise UnsupportedKeyError(a, 'key is nested too deeply') from None


def _equal(a, b):
  if a is b:
    return True
  tag = category_of(a)
  if tag != category_of(b):
    return False
  if tag == NUMBER:
    if a == b:
      return True
    return isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b)
  elif tag == LIST or tag == TUPLE:
    return len(a) == len(b) and all(_equal(x, y) for x, y in zip(a, b))
  elif tag == MAPPING:
    return _mapping_equal(a, b)
  elif tag == SET:
    return _set_equal(a, b)
  elif tag == DATACLASS:
    if type(a) is not type(b):
      return False
    return all(_equal(getattr(a, name), getattr(b, name)) for name in compared_fields(a))
  elif tag == OPAQUE:
    return type(a) is type(b) and a == b
  return a == b


def _index(members):  # type: (Iterable[Any]) -> Optional[Dict[Any, Any]]
  try:
    return {x: x for x in members}
  except TypeError:
    return None


def _take_counterpart(item, index, members, used, matches):
  # type: (Any, Optional[dict], Iterable[Any], Set[int], Callable[[Any], bool]) -> Any
  # Returns a member of *members* that *matches* and was not taken before,
  # marking it as taken. The index finds it in the common case, the scan
  # covers members that are equal to *item* structurally but not by `==`
  # (eg. NaN).
  if index is not None:
    try:
      other = index.get(item, _MISSING)
    except TypeError:
      other = _MISSING
    if other is not _MISSING and id(other) not in used and matches(other):
      used.add(id(other))
      return other
  for other in members:
    if id(other) not in used and matches(other):
      used.add(id(other))
      return other
  return _MISSING


def _mapping_equal(a, b):  # type: (Mapping, Mapping) -> bool
  if len(a) != len(b):
    return False
  index = _index(b)
  used = set()
  for key, value in a.items():
    def matches(other_key):
      return _equal(key, other_key) and _equal(value, b[other_key])
    if _take_counterpart(key, index, b, used, matches) is _MISSING:
      return False
  return True


def _set_equal(a, b):  # type: (AbstractSet, AbstractSet) -> bool
  if len(a) != len(b):
    return False
  index = _index(b)
  used = set()
  for item in a:
    if _take_counterpart(item, index, b, used, lambda other: _equal(item, other)) is _MISSING:
      return False
  return True
