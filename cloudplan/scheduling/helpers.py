# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import warnings


class DocableDict:
    """A thin wrapper that provide a read-only dictionary with customized doc.

    Args:
        doc (str): Customized doc of the dict.
        kwargs (dict): Dictionary items to store.
    """

    def __init__(self, doc: str, **kwargs):
        self._original_dict = kwargs
        self.doc = doc

    def __getattr__(self, name):
        return getattr(self._original_dict, name, None)

    def __getitem__(self, k):
        return self._original_dict[k]

    def __setitem__(self, k, v):
        warnings.warn("Metrics are read-only, the new value is ignored")

    def __contains__(self, k):
        return k in self._original_dict

    def __iter__(self):
        return iter(self._original_dict)

    def __getstate__(self):
        return self.__dict__

    def __setstate__(self, state):
        self.__dict__.update(state)

    def __repr__(self):
        return self._original_dict.__repr__()

    def __str__(self):
        return self.__repr__()

    def __len__(self):
        return len(self._original_dict)
