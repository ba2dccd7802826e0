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

""" Exceptions raised by the #nr.deepmap package. """


class DeepMapError(Exception):
  pass


class UnsupportedKeyError(DeepMapError, TypeError):
  """
  Raised when a value can not be used as a key of a #DeepMap because no
  deterministic digest can be computed for it (eg. because it contains a
  reference cycle or is an unhashable object of an unknown type).
  """

  def __init__(self, key, reason):  # type: (Any, str) -> None
    super(UnsupportedKeyError, self).__init__(key, reason)
    self.key = key
    self.reason = reason

  def __str__(self):
    return '{} (key type: {})'.format(self.reason, type(self.key).__name__)


class BenchmarkConfigError(DeepMapError, ValueError):
  pass
