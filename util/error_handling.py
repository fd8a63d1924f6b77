from typing import Any, Tuple, Type, Union

TypeSpec = Union[Type, Tuple[Type, ...]]


class ErrorHandling:
    @staticmethod
    def check_types(arg: Any, expected: TypeSpec, label: str = "check_types") -> Any:
        """
        Return `arg` unchanged if it is an instance of `expected`, else raise TypeError.

        `True` is not accepted for an `int` setting such as db_storage_gb, even though
        bool subclasses int.
        """
        allowed = expected if isinstance(expected, tuple) else (expected,)
        if not all(isinstance(t, type) for t in allowed):
            raise TypeError(f"[{label}] 'expected' must be a type or tuple of types, got {expected!r}")

        is_stray_bool = isinstance(arg, bool) and bool not in allowed
        if is_stray_bool or not isinstance(arg, allowed):
            wanted = " or ".join(t.__name__ for t in allowed)
            raise TypeError(f"[{label}] expected {wanted}, got {type(arg).__name__} ({arg!r})")
        return arg


check_types = ErrorHandling.check_types
