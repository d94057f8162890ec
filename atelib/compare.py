# SPDX-License-Identifier: ISC
#
# compare.py
# Comparison helpers for telemetry state
#

"""
Explicit comparisons used by the predicates.

Collections read back from a device (LACP members, neighbor MACs, LSP
hostnames) come in no particular order, so they are compared over a
canonical sorted form instead of positionally.
"""

import json
from collections import Counter


def _canonical(items):
    "Sorted list form of `items`; falls back to repr() ordering for mixed types."
    items = list(items)
    try:
        return sorted(items)
    except TypeError:
        return sorted(items, key=repr)


def unordered_equal(a, b, duplicates=True):
    """
    Order independent equality of two collections.

    * `duplicates`: when True (default) the element counts must match too,
      i.e. `["a", "a", "b"]` differs from `["a", "b"]`. When False only the
      sets of distinct elements are compared.
    """
    a = _canonical(a)
    b = _canonical(b)
    if duplicates:
        if len(a) != len(b):
            return False
        try:
            return Counter(a) == Counter(b)
        except TypeError:
            return a == b
    return _canonical(_distinct(a)) == _canonical(_distinct(b))


def _distinct(items):
    out = []
    for item in items:
        if item not in out:
            out.append(item)
    return out


def elements_present(expected, actual):
    "Returns True if every element of `expected` is found in `actual`."
    actual = list(actual)
    return all(e in actual for e in expected)


def remove(items, item):
    "Returns a tuple of `items` without any occurrence of `item`."
    return tuple(i for i in items if i != item)


class state_cmp_result(object):
    "state_cmp result class for better assertion messages"

    def __init__(self):
        self.errors = []

    def add_error(self, error):
        "Append error message to the result"
        for line in error.splitlines():
            self.errors.append(line)

    def has_errors(self):
        "Returns True if there were errors, otherwise False."
        return len(self.errors) > 0

    def gen_report(self):
        headline = ["Generated state diff error report:", ""]
        return headline + self.errors

    def __str__(self):
        return "Generated state diff error report:\n\n" + "\n".join(self.errors) + "\n"


def _dump(v):
    if isinstance(v, (dict, list)):
        return json.dumps(v, indent=4, sort_keys=True, default=str)
    return "'{}'".format(v)


def _diff(output, expected, path, errors):
    """
    Compare `expected` against `output` appending "path: message" lines to
    `errors`. Dicts and lists in `expected` are subsets of `output`.
    """
    if expected == "*":
        return

    if isinstance(expected, dict):
        if not isinstance(output, dict):
            errors.append(
                "{}: output has '{}' but expected an object".format(path, output)
            )
            return
        for key, value in expected.items():
            if value is None:
                if key in output:
                    errors.append(
                        "{}: output has key '{}' which is not supposed to be present".format(
                            path, key
                        )
                    )
                continue
            if key not in output:
                errors.append(
                    "{}: expected has key '{}' which is not present in output".format(
                        path, key
                    )
                )
                continue
            _diff(output[key], value, "{}->{}".format(path, key), errors)
        return

    if isinstance(expected, (list, tuple)):
        if not isinstance(output, (list, tuple)):
            errors.append(
                "{}: output has '{}' but expected an array".format(path, output)
            )
            return
        expected = list(expected)
        if expected and expected[0] == "__ordered__":
            expected = expected[1:]
            if len(output) != len(expected):
                errors.append(
                    "{}: output has array of length {} but in expected it is of length {}".format(
                        path, len(output), len(expected)
                    )
                )
                return
            for idx, (v1, v2) in enumerate(zip(output, expected)):
                _diff(v1, v2, "{}[{}]".format(path, idx), errors)
            return

        unmatched = list(range(len(output)))
        for idx2, v2 in enumerate(expected):
            for idx1 in unmatched:
                sub = []
                _diff(output[idx1], v2, path, sub)
                if not sub:
                    unmatched.remove(idx1)
                    break
            else:
                errors.append(
                    "{}: expected has the following element at index {} which is not present in output: {}".format(
                        path, idx2, _dump(v2)
                    )
                )
        return

    if output != expected:
        errors.append(
            "{}: output has element with value '{}' but in expected it has value '{}'".format(
                path, output, expected
            )
        )


def state_cmp(output, expected):
    """
    State compare function. Receives two parameters:
    * `output`: state read from a device, as dicts, lists and scalars
    * `expected`: what is expected to be seen

    Returns 'None' when `expected` is a subset of `output`, otherwise a
    'state_cmp_result' with an error report. Notation:

    * 'None' as an object value checks for key absence in output
    * '*' as a value checks for presence without checking the value
    * '__ordered__' as first element of an array in expected also checks
      the order; arrays are otherwise matched regardless of order, each
      output element matching at most one expected element
    """
    errors = []
    _diff(output, expected, "> $", errors)
    if not errors:
        return None

    result = state_cmp_result()
    result.add_error("\n".join(errors))
    return result
