# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


class DottableDict(dict):
    """A wrapper to dictionary to make possible to key as property."""

    def __init__(self, *args, **kwargs):
        dict.__init__(self, *args, **kwargs)
        self.__dict__ = self


def convert_dottable(natural_dict: dict) -> DottableDict:
    """Convert a dictionary to DottableDict.

    Nested dictionaries, including the ones inside lists, are converted too.

    Args:
        natural_dict (dict): Dictionary to convert to DottableDict.

    Returns:
        DottableDict: Dottable object.
    """
    dottable_dict = DottableDict(natural_dict)
    for k, v in natural_dict.items():
        if type(v) is dict:
            v = convert_dottable(v)
            dottable_dict[k] = v
        elif type(v) is list:
            dottable_dict[k] = [convert_dottable(item) if type(item) is dict else item for item in v]
    return dottable_dict
