from __future__ import annotations

import inspect
import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Literal, Type, TypeVar, get_origin

import numpy as np

T = TypeVar('T', bound='DictMixin')

@dataclass
class DictMixin:
    """Mixin for basic conversion of a dataclass to and from dict."""
    def to_dict(self) -> Dict[str,Any]:
        """
        Convert the object to a dictionary

        Returns: Dictionary of object parameters
        """
        return asdict(self)

    @classmethod
    def from_dict(cls : Type[T], parameter_dict:Dict[str,Any]) -> T:
        """
        Create an object from a dictionary

        Args:
            parameter_dict: dictionary of parameters to define the object
        Returns: new object
        """
        parameter_dict = dict(parameter_dict)
        parameter_dict.pop("class", None)
        new_object = cls(**parameter_dict)

        # Field types are strings here because of `from __future__ import annotations`
        for field in fields(cls):
            if get_origin(field.type) is np.ndarray or field.type is np.ndarray or "np.ndarray" in str(field.type):
                value = getattr(new_object, field.name)
                if value is not None:
                    setattr(new_object, field.name, np.array(value))

        return new_object


def filter_constructor_kwargs(class_constructor, d: Dict[str, Any], on_keyword_mismatch: Literal['warn', 'raise', 'ignore'] = 'warn') -> Dict[str, Any]:
    """Drop entries of `d` that `class_constructor` does not accept, warning or raising as requested."""
    sig = inspect.signature(class_constructor)
    expected_keywords = [p.name for p in sig.parameters.values() if p.kind == p.POSITIONAL_OR_KEYWORD]
    unexpected_keywords = [k for k in d if k not in expected_keywords]

    if unexpected_keywords:
        if on_keyword_mismatch == 'raise':
            raise TypeError(f"Unexpected keyword arguments for {class_constructor.__name__}: {unexpected_keywords}")
        elif on_keyword_mismatch == 'warn':
            logging.warning(f"Ignoring unexpected keyword arguments for {class_constructor.__name__}: {unexpected_keywords}")
    return {k: v for k, v in d.items() if k not in unexpected_keywords}
