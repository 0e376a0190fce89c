from __future__ import annotations

from typing import Annotated, NamedTuple


class FUSFieldData(NamedTuple):
    """
    A lightweight named tuple holding a display name and a description for the fields
    of a dataclass. For example, the Axis dataclass has fields annotated like:

    ```python
    class Axis:
        units: Annotated[str, FUSFieldData("Units", "Length units of the axis values")] = "m"
    ```

    Annotated[] does not interfere with runtime behavior or type compatibility.
    """

    name: Annotated[str | None, "The name of the dataclass field."]
    description: Annotated[str | None, "The description of the dataclass field."]
