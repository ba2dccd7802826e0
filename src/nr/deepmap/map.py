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
Provides the #DeepMap, a mapping that compares its keys by their structure
rather than by identity or `__hash__()`.
"""

from .equality import deep_equal
from .hashing import content_hash
import collections.abc
import logging
import reprlib

logger = logging.getLogger(__name__)

_MISSING = object()


class _NotFoundType(object):
  """ Type of the #NOT_FOUND sentinel. """

  __slots__ = ()

  def __repr__(self):
    return 'NOT_FOUND'

  def __reduce__(self):
    return 'NOT_FOUND'


#: Returned by #DeepMap.get() if the map contains no entry for the key.
NOT_FOUND = _NotFoundType()


class _Entry(object):

  __slots__ = ('digest', 'key', 'value', 'order')

  def __init__(self, digest, key, value, order):  # type: (Hashable, Any, Any, int) -> None
    self.digest = digest
    self.key = key
    self.value = value
    self.order = order

  def __repr__(self):
    return '_Entry(digest={!r}, key={!r}, value={!r}, order={!r})'.format(
      self.digest, self.key, self.value, self.order)


class _ItemsView(collections.abc.ItemsView):

  def __iter__(self):
    return self._mapping.entries()


class _ValuesView(collections.abc.ValuesView):

  def __iter__(self):
    for _key, value in self._mapping.entries():
      yield value

  def __contains__(self, value):
    return any(x is value or x == value for x in self)


class DeepMap(collections.abc.MutableMapping):
  """
  A mapping that resolves keys by structural equality. Keys can be any
  combination of primitive values, lists, tuples, mappings, sets and
  dataclass instances as well as other hashable objects (see
  #nr.deepmap.hashing). Two keys that are structurally equal address the same
  entry, even if they are separate objects:

  ```python
  m = DeepMap()
  m.set({'a': [1, 2]}, 'foo')
  assert m.get({'a': [1, 2]}) == 'foo'
  ```

  Each key is digested with the *hasher* (defaults to
  #nr.deepmap.hashing.content_hash()). Entries with the same digest share a
  bucket in which the key is compared with #deep_equal(). Any callable that
  returns the same hashable digest for structurally equal keys can be used
  as the *hasher*.

  Entries are iterated in insertion order. Updating the value of a key keeps
  its position. The map must not be resized while it is being iterated over
  (a #RuntimeError is raised when iteration continues after an entry has
  been added or removed).

  Keys are stored by reference. Mutating a key after it has been inserted
  invalidates its digest and makes the entry unreachable by lookup.

  The map is not thread-safe, concurrent access must be synchronized by the
  caller.
  """

  def __init__(self, entries=None, hasher=None):
    # type: (Union[Mapping, Iterable[Tuple[Any, Any]], None], Optional[Callable[[Any], Hashable]]) -> None
    self.hasher = hasher or content_hash
    self._buckets = {}
    self._entries = {}
    self._next_order = 0
    if entries is not None:
      self.update(entries)

  @reprlib.recursive_repr()
  def __repr__(self):
    return '{}({!r})'.format(type(self).__name__, list(self.entries()))

  def _locate(self, key):  # type: (Any) -> Tuple[Hashable, Optional[List[_Entry]], Optional[_Entry]]
    digest = self.hasher(key)
    bucket = self._buckets.get(digest)
    if bucket is not None:
      for entry in bucket:
        if deep_equal(entry.key, key):
          return digest, bucket, entry
    return digest, bucket, None

  def _insert(self, digest, bucket, key, value):  # type: (Hashable, Optional[List[_Entry]], Any, Any) -> _Entry
    entry = _Entry(digest, key, value, self._next_order)
    self._next_order += 1
    if bucket is None:
      self._buckets[digest] = [entry]
    else:
      logger.debug('digest collision: %r is shared by %d key(s)', digest, len(bucket) + 1)
      bucket.append(entry)
    self._entries[entry.order] = entry
    return entry

  def _remove(self, bucket, entry):  # type: (List[_Entry], _Entry) -> None
    bucket.remove(entry)
    if not bucket:
      del self._buckets[entry.digest]
    del self._entries[entry.order]

  @property
  def size(self):  # type: () -> int
    return len(self._entries)

  def set(self, key, value):  # type: (Any, Any) -> DeepMap
    """
    Associates *value* with *key*. If the map already contains a key that
    is structurally equal to *key*, its value is replaced and the entry
    keeps its position. Returns the map.
    """

    digest, bucket, entry = self._locate(key)
    if entry is None:
      self._insert(digest, bucket, key, value)
    else:
      entry.value = value
    return self

  def get(self, key, default=NOT_FOUND):  # type: (Any, Any) -> Any
    """
    Returns the value for *key*, or *default* if the map contains no such
    key. The default is the #NOT_FOUND sentinel, which makes a missing key
    distinguishable from a stored `None`.
    """

    entry = self._locate(key)[2]
    return default if entry is None else entry.value

  def has(self, key):  # type: (Any) -> bool
    return self._locate(key)[2] is not None

  def delete(self, key):  # type: (Any) -> bool
    """
    Removes the entry for *key*. Returns #True if an entry was removed.
    """

    _digest, bucket, entry = self._locate(key)
    if entry is None:
      return False
    self._remove(bucket, entry)
    return True

  def clear(self):  # type: () -> None
    self._buckets.clear()
    self._entries.clear()
    self._next_order = 0

  def entries(self):  # type: () -> Iterator[Tuple[Any, Any]]
    """
    Iterates over the `(key, value)` pairs of the map in insertion order.
    """

    for entry in self._entries.values():
      yield entry.key, entry.value

  def for_each(self, callback):  # type: (Callable[[Any, Any, DeepMap], Any]) -> None
    """
    Calls `callback(value, key, map)` for every entry in insertion order.
    """

    for key, value in self.entries():
      callback(value, key, self)

  def copy(self):  # type: () -> DeepMap
    result = type(self)(hasher=self.hasher)
    for entry in self._entries.values():
      result._insert(entry.digest, result._buckets.get(entry.digest), entry.key, entry.value)
    return result

  def __len__(self):
    return len(self._entries)

  def __iter__(self):
    for entry in self._entries.values():
      yield entry.key

  def __reversed__(self):
    for order in reversed(self._entries):
      yield self._entries[order].key

  def __contains__(self, key):
    return self.has(key)

  def __getitem__(self, key):
    entry = self._locate(key)[2]
    if entry is None:
      raise KeyError(key)
    return entry.value

  def __setitem__(self, key, value):
    self.set(key, value)

  def __delitem__(self, key):
    if not self.delete(key):
      raise KeyError(key)

  def __eq__(self, other):
    if not isinstance(other, collections.abc.Mapping):
      return NotImplemented
    if not isinstance(other, DeepMap):
      other = DeepMap(other)
    if len(self) != len(other):
      return False
    for key, value in self.entries():
      found = other.get(key)
      if found is NOT_FOUND or not (found is value or found == value):
        return False
    return True

  def items(self):  # type: () -> ItemsView
    return _ItemsView(self)

  def values(self):  # type: () -> ValuesView
    return _ValuesView(self)

  def pop(self, key, default=_MISSING):  # type: (Any, Any) -> Any
    _digest, bucket, entry = self._locate(key)
    if entry is None:
      if default is _MISSING:
        raise KeyError(key)
      return default
    self._remove(bucket, entry)
    return entry.value

  def popitem(self):  # type: () -> Tuple[Any, Any]
    """
    Removes and returns the most recently inserted `(key, value)` pair.
    """

    if not self._entries:
      raise KeyError('popitem(): map is empty')
    entry = self._entries[next(reversed(self._entries))]
    self._remove(self._buckets[entry.digest], entry)
    return entry.key, entry.value

  def setdefault(self, key, default=None):  # type: (Any, Any) -> Any
    digest, bucket, entry = self._locate(key)
    if entry is None:
      entry = self._insert(digest, bucket, key, default)
    return entry.value
