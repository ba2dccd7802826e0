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
Computes deterministic digests for key values. A key is first translated
into a canonical byte encoding that is equal for any two structurally equal
values (see #nr.deepmap.equality.deep_equal()), which is then fed into one
of the #hashlib algorithms.

Values are sorted into one of the following categories, each identified by
a one byte tag that prefixes its encoding:

* `None`
* booleans (never equal to numbers)
* numbers (`int` and `float`; integral floats encode like the equal `int`
  and every NaN encodes the same)
* text (`str`) and binary data (`bytes`, `bytearray`, `memoryview`)
* lists and tuples (element order matters, a list never equals a tuple)
* mappings and sets (member order does not matter)
* dataclass instances
* any other hashable object, which is encoded with its type name and its
  #hash() and thus retains the equality semantics of its type

Anything else, as well as containers that reference themselves, raise an
#UnsupportedKeyError.
"""

from .errors import UnsupportedKeyError
import abc
import collections.abc
import dataclasses
import hashlib
import logging
import math

logger = logging.getLogger(__name__)

NULL = b'N'
BOOLEAN = b'B'
NUMBER = b'i'
TEXT = b's'
BINARY = b'b'
LIST = b'l'
TUPLE = b't'
MAPPING = b'd'
SET = b'S'
DATACLASS = b'D'
OPAQUE = b'o'

#: Categories whose encoding recurses into member values.
CONTAINERS = frozenset([LIST, TUPLE, MAPPING, SET, DATACLASS])


def category_of(value):  # type: (Any) -> bytes
  """
  Returns the category tag of *value*. Two values of different categories
  are never structurally equal.
  """

  if value is None:
    return NULL
  if isinstance(value, bool):
    return BOOLEAN
  if isinstance(value, (int, float)):
    return NUMBER
  if isinstance(value, str):
    return TEXT
  if isinstance(value, (bytes, bytearray, memoryview)):
    return BINARY
  if isinstance(value, list):
    return LIST
  if isinstance(value, tuple):
    return TUPLE
  if isinstance(value, collections.abc.Mapping):
    return MAPPING
  if isinstance(value, collections.abc.Set):
    return SET
  if dataclasses.is_dataclass(value) and not isinstance(value, type):
    return DATACLASS
  return OPAQUE


def compared_fields(value):  # type: (Any) -> List[str]
  """
  Returns the names of the dataclass fields of *value* that take part in
  comparisons, in declaration order.
  """

  return [f.name for f in dataclasses.fields(value) if f.compare]


def _qualified_name(type_):  # type: (type) -> str
  return '{}.{}'.format(type_.__module__, type_.__qualname__)


def _sized(tag, data):  # type: (bytes, bytes) -> bytes
  return tag + str(len(data)).encode('ascii') + b':' + data


def _encode_number(value):  # type: (Union[int, float]) -> bytes
  if isinstance(value, float):
    if math.isnan(value):
      return b'n'
    if math.isinf(value):
      return b'f+inf;' if value > 0 else b'f-inf;'
    if not value.is_integer():
      return b'f' + value.hex().encode('ascii') + b';'
  # Hexadecimal is not subject to the int to str conversion length limit.
  return NUMBER + format(int(value), 'x').encode('ascii') + b';'


class _Encoder(object):

  def __init__(self, root):  # type: (Any) -> None
    self.root = root
    self._active = set()

  def encode(self, value):  # type: (Any) -> bytes
    tag = category_of(value)
    if tag == NULL:
      return NULL
    elif tag == BOOLEAN:
      return BOOLEAN + (b'1' if value else b'0')
    elif tag == NUMBER:
      return _encode_number(value)
    elif tag == TEXT:
      return _sized(TEXT, value.encode('utf8', 'surrogatepass'))
    elif tag == BINARY:
      return _sized(BINARY, bytes(value))
    elif tag in CONTAINERS:
      return self._encode_container(tag, value)

    try:
      value_hash = hash(value)
    except TypeError:
      raise UnsupportedKeyError(self.root,
        'unhashable value of type {!r}'.format(_qualified_name(type(value))))
    name = _qualified_name(type(value)).encode('utf8')
    return _sized(OPAQUE, name) + format(value_hash, 'x').encode('ascii') + b';'

  def _encode_container(self, tag, value):  # type: (bytes, Any) -> bytes
    ident = id(value)
    if ident in self._active:
      raise UnsupportedKeyError(self.root, 'key contains a reference cycle')
    self._active.add(ident)
    try:
      if tag == MAPPING:
        members = sorted(self.encode(k) + self.encode(v) for k, v in value.items())
      elif tag == SET:
        members = sorted(self.encode(x) for x in value)
      elif tag == DATACLASS:
        name = _qualified_name(type(value)).encode('utf8')
        members = [_sized(TEXT, name)]
        for field_name in compared_fields(value):
          members.append(_sized(TEXT, field_name.encode('utf8')))
          members.append(self.encode(getattr(value, field_name)))
      else:
        members = [self.encode(x) for x in value]
    finally:
      self._active.discard(ident)
    return tag + str(len(members)).encode('ascii') + b':' + b''.join(members)


def encode(value):  # type: (Any) -> bytes
  """
  Returns the canonical encoding of *value*. Structurally equal values have
  the same encoding. Raises an #UnsupportedKeyError if *value* can not be
  encoded.
  """

  try:
    return _Encoder(value).encode(value)
  except RecursionError:
    logger.debug('rejected key of type %r: maximum recursion depth exceeded',
      type(value).__name__)
    raise UnsupportedKeyError(value, 'key is nested too deeply') from None


class IContentHasher(metaclass=abc.ABCMeta):
  """
  Interface for objects that compute the digest of a key. Any callable that
  accepts a key and returns a hashable digest can be used as the hasher of a
  #DeepMap, this interface only formalizes the contract: structurally equal
  keys must produce equal digests.
  """

  @abc.abstractmethod
  def digest(self, value):  # type: (Any) -> Hashable
    pass

  def __call__(self, value):  # type: (Any) -> Hashable
    return self.digest(value)


class ContentHasher(IContentHasher):
  """
  Digests the canonical encoding of a key with a #hashlib algorithm and
  returns the first *digest_size* bytes of the hash as an integer.
  """

  _BLAKE2 = {'blake2b': hashlib.blake2b, 'blake2s': hashlib.blake2s}

  def __init__(self, algorithm='blake2b', digest_size=8):  # type: (str, int) -> None
    if digest_size < 1:
      raise ValueError('digest_size must be positive, got {!r}'.format(digest_size))
    self.algorithm = algorithm
    self.digest_size = digest_size
    available = len(self._hash_bytes(b''))
    if available < digest_size:
      raise ValueError('{} produces {} bytes, digest_size {!r} is too large'.format(
        algorithm, available, digest_size))

  def __repr__(self):
    return '{}(algorithm={!r}, digest_size={!r})'.format(
      type(self).__name__, self.algorithm, self.digest_size)

  def _hash_bytes(self, data):  # type: (bytes) -> bytes
    if self.algorithm in self._BLAKE2:
      return self._BLAKE2[self.algorithm](data, digest_size=self.digest_size).digest()
    hasher = hashlib.new(self.algorithm, data)
    if self.algorithm.startswith('shake_'):
      return hasher.digest(self.digest_size)
    return hasher.digest()[:self.digest_size]

  def digest(self, value):  # type: (Any) -> int
    return int.from_bytes(self._hash_bytes(encode(value)), 'big')


default_hasher = ContentHasher()


def content_hash(value):  # type: (Any) -> int
  """
  Computes the digest of *value* with the #default_hasher.
  """

  return default_hasher.digest(value)
