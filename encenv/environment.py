import os
from typing import Optional
from collections.abc import Iterator, Mapping, MutableMapping


class EnvironmentSet(MutableMapping[str, str]):
    """Ordered, duplicate-free set of decrypted environment variables.

    Assigning an existing name replaces its value but keeps the position
    where the name was first seen, so emission order is stable and the
    last assignment in the plaintext wins.

    Instances live in process memory only. ``repr`` shows names and never
    values, so an EnvironmentSet can be logged or printed in a traceback
    without leaking secrets.
    """

    def __init__(self, data: Optional[Mapping[str, str]] = None) -> None:
        self._data: dict[str, str] = {}
        if data is not None:
            self.update(data)

    def __repr__(self) -> str:
        return f'<EnvironmentSet names={list(self._data)!r}>'

    # --- Magic methods ---

    def __getitem__(self, name: str) -> str:
        return self._data[name]

    def __setitem__(self, name: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(
                f"Environment value for {name} must be str, got {type(value).__name__}"
            )
        self._data[name] = value

    def __delitem__(self, name: str) -> None:
        del self._data[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EnvironmentSet):
            return list(self._data.items()) == list(other._data.items())
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    # --- Public API ---

    @property
    def names(self) -> list[str]:
        """Variable names in emission order."""
        return list(self._data)

    def as_dict(self) -> dict[str, str]:
        """Return a plain dict copy, preserving order."""
        return dict(self._data)

    def apply(
        self,
        environ: Optional[MutableMapping[str, str]] = None,
        override: bool = True
    ) -> list[str]:
        """Copy every variable into ``environ`` (``os.environ`` by default).

        With ``override=False`` variables already present in ``environ``
        are left untouched.

        Returns:
            Names that were actually written.
        """
        target = os.environ if environ is None else environ
        written: list[str] = []
        for name, value in self._data.items():
            if not override and name in target:
                continue
            target[name] = value
            written.append(name)
        return written
