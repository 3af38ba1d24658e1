from __future__ import annotations

import inspect
import types
from dataclasses import dataclass
from inspect import Parameter
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from conduit._internal.identifiers import identifier_of
from conduit._internal.type_checks import is_builtin_class, is_runtime_class
from conduit.exceptions import ConduitCannotInstantiateError

_MISSING_ANNOTATION: Any = object()
_IMPLICIT_FIRST_PARAMETER_NAMES = {"self", "cls"}
_NONE_TYPE = type(None)


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """A constructor parameter as seen by the resolver and the compiler."""

    name: str
    annotation: type[Any] | None
    """The class to resolve for this parameter, when it names exactly one class."""
    builtin: bool
    nullable: bool
    has_default: bool
    default: Any = None
    positional_only: bool = False

    @property
    def type(self) -> str | None:
        """Identifier of ``annotation``, as recorded in compiled artifacts."""
        if self.annotation is None:
            return None
        return identifier_of(self.annotation)

    @property
    def optional(self) -> bool:
        """True when the parameter can be omitted: it has a default or accepts ``None``."""
        return self.has_default or self.nullable


@dataclass(frozen=True, slots=True)
class _AnnotationShape:
    annotation: type[Any] | None
    builtin: bool
    nullable: bool


class TypeDescriptorProvider:
    """Describe constructor parameters of concrete classes.

    The only component that introspects classes at runtime. Results are cached
    per class.
    """

    def __init__(self) -> None:
        self._cache: dict[type[Any], tuple[ParameterDescriptor, ...]] = {}

    def describe(self, cls: type[Any]) -> tuple[ParameterDescriptor, ...]:
        """Get the constructor parameters of ``cls`` in declaration order.

        ``self``, ``*args`` and ``**kwargs`` are skipped.

        Raises:
            ConduitCannotInstantiateError: If the signature cannot be read or a
                parameter annotation is an unresolvable forward reference.

        """
        cached = self._cache.get(cls)
        if cached is not None:
            return cached

        init_callable = cls.__init__
        if init_callable is object.__init__:
            descriptors: tuple[ParameterDescriptor, ...] = ()
        else:
            descriptors = self._describe_callable(cls, init_callable)
        self._cache[cls] = descriptors
        return descriptors

    def clear(self) -> None:
        self._cache.clear()

    def _describe_callable(
        self,
        cls: type[Any],
        init_callable: Any,
    ) -> tuple[ParameterDescriptor, ...]:
        class_name = identifier_of(cls)
        try:
            parameters = tuple(inspect.signature(init_callable).parameters.values())
        except (TypeError, ValueError) as error:
            raise ConduitCannotInstantiateError(
                class_name,
                f"constructor signature is not available ({error})",
            ) from error
        if parameters and parameters[0].name in _IMPLICIT_FIRST_PARAMETER_NAMES:
            parameters = parameters[1:]

        annotations, annotation_error = self._resolved_type_hints(init_callable)
        descriptors: list[ParameterDescriptor] = []
        for parameter in parameters:
            if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
                continue
            annotation = self._resolve_parameter_annotation(
                parameter=parameter,
                annotations=annotations,
                annotation_error=annotation_error,
                class_name=class_name,
            )
            shape = self._shape_of(annotation)
            has_default = parameter.default is not Parameter.empty
            descriptors.append(
                ParameterDescriptor(
                    name=parameter.name,
                    annotation=shape.annotation,
                    builtin=shape.builtin,
                    nullable=shape.nullable,
                    has_default=has_default,
                    default=parameter.default if has_default else None,
                    positional_only=parameter.kind is Parameter.POSITIONAL_ONLY,
                ),
            )
        return tuple(descriptors)

    def _resolve_parameter_annotation(
        self,
        *,
        parameter: Parameter,
        annotations: dict[str, Any],
        annotation_error: Exception | None,
        class_name: str,
    ) -> Any:
        annotation = annotations.get(parameter.name, _MISSING_ANNOTATION)
        if annotation is not _MISSING_ANNOTATION:
            return annotation

        raw_annotation = parameter.annotation
        if raw_annotation is Parameter.empty:
            return _MISSING_ANNOTATION
        if not isinstance(raw_annotation, str):
            return raw_annotation

        reason = f"cannot resolve annotation {raw_annotation!r} of parameter '{parameter.name}'"
        if annotation_error is None:
            raise ConduitCannotInstantiateError(class_name, reason)
        raise ConduitCannotInstantiateError(
            class_name,
            f"{reason} ({annotation_error})",
        ) from annotation_error

    def _resolved_type_hints(self, init_callable: Any) -> tuple[dict[str, Any], Exception | None]:
        try:
            return get_type_hints(init_callable, include_extras=True), None
        except (AttributeError, NameError, TypeError) as error:
            return {}, error

    def _shape_of(self, annotation: Any) -> _AnnotationShape:
        annotation = self._unwrap_annotated(annotation)
        if annotation is _MISSING_ANNOTATION or annotation is Any:
            return _AnnotationShape(annotation=None, builtin=True, nullable=False)
        if annotation is None or annotation is _NONE_TYPE:
            return _AnnotationShape(annotation=None, builtin=True, nullable=True)

        origin = get_origin(annotation)
        if origin is Union or origin is types.UnionType:
            members = get_args(annotation)
            non_none_members = [member for member in members if member is not _NONE_TYPE]
            nullable = len(non_none_members) < len(members)
            if len(non_none_members) == 1:
                inner = self._shape_of(non_none_members[0])
                return _AnnotationShape(
                    annotation=inner.annotation,
                    builtin=inner.builtin,
                    nullable=nullable or inner.nullable,
                )
            return _AnnotationShape(annotation=None, builtin=True, nullable=nullable)

        if origin is None and is_runtime_class(annotation):
            if is_builtin_class(annotation):
                return _AnnotationShape(annotation=annotation, builtin=True, nullable=False)
            return _AnnotationShape(annotation=annotation, builtin=False, nullable=False)

        # parameterized generics, Literal[...], TypeVars: nothing to construct
        return _AnnotationShape(annotation=None, builtin=True, nullable=False)

    def _unwrap_annotated(self, annotation: Any) -> Any:
        while get_origin(annotation) is Annotated:
            annotation = get_args(annotation)[0]
        return annotation


__all__ = ["ParameterDescriptor", "TypeDescriptorProvider"]
