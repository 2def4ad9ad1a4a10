"""utilities.py - Assorted Helper Functions"""
import typing as typ

__all__ = ['ordered_unique', 'sequence_to_index']

def ordered_unique(col: typ.Collection) -> tuple:
    """Returns order preserved unique set"""
    seen = set()
    return tuple(ele for ele in col if not (ele in seen or seen.add(ele)))

def sequence_to_index(value: str) -> list[int]:
    """Converts cardinal axis string sequence to axis indices

    :param value: Axis sequence, e.g. 'XYZ' (case insensitive)
    :type value: str

    :raises ValueError: If the sequence contains a character other than x, y, z

    :return: Axis indices
    :rtype: list[int]
    """
    mapping = {'x': 0, 'y': 1, 'z': 2}
    try:
        return [mapping[c] for c in value.lower()]
    except KeyError as err:
        raise ValueError(f"Invalid axis sequence '{value}'") from err
