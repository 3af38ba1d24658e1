import logging
import time

import pytest

from conduit import (
    SCHEMA_VERSION,
    BindingType,
    ConduitCircularDependencyError,
    Container,
    ContainerCompiler,
    DependencyDescriptor,
)
from tests.services import (
    Logger,
    MemoryRepository,
    Notifier,
    PositionalOnlyService,
    Repository,
    SimpleService,
    TupleDefaultService,
    build_container,
    build_cyclic_container,
)

LOGGER = "tests.services.Logger"
MAILER = "tests.services.Mailer"
NOTIFIER = "tests.services.Notifier"


def _compile(container: Container):  # noqa: ANN202
    return ContainerCompiler(container).compile()


# region Classification


def test_class_without_parameters_is_simple() -> None:
    container = Container()
    container.singleton(Logger)

    descriptor = _compile(container).bindings[LOGGER]

    assert descriptor.type is BindingType.SIMPLE
    assert descriptor.compilable
    assert descriptor.shared
    assert descriptor.class_ == LOGGER
    assert descriptor.dependencies == ()


def test_class_with_parameters_is_complex() -> None:
    container = Container()
    container.bind(Notifier)

    descriptor = _compile(container).bindings[NOTIFIER]

    assert descriptor.type is BindingType.COMPLEX
    assert descriptor.compilable
    assert not descriptor.shared
    assert descriptor.dependencies == (
        DependencyDescriptor(name="mailer", type=MAILER, builtin=False, optional=False),
        DependencyDescriptor(
            name="channel",
            type="str",
            builtin=True,
            optional=True,
            default="email",
        ),
    )


def test_factory_binding_is_closure() -> None:
    container = Container()
    container.bind("mailer.transport", lambda _c, _p: object())

    descriptor = _compile(container).bindings["mailer.transport"]

    assert descriptor.type is BindingType.CLOSURE
    assert not descriptor.compilable
    assert descriptor.class_ is None


def test_instance_binding_is_unknown() -> None:
    container = Container()
    container.bind("config", {"debug": True})

    descriptor = _compile(container).bindings["config"]

    assert descriptor.type is BindingType.UNKNOWN
    assert not descriptor.compilable


def test_rebinding_to_registered_abstract_is_unknown() -> None:
    container = Container()
    container.singleton(Logger)
    container.bind("app.logger", Logger)

    descriptor = _compile(container).bindings["app.logger"]

    assert descriptor.type is BindingType.UNKNOWN
    assert not descriptor.compilable
    assert descriptor.class_ == LOGGER


def test_binding_to_unregistered_class_is_compiled_against_that_class() -> None:
    container = Container()
    container.bind(Repository, MemoryRepository)

    descriptor = _compile(container).bindings["tests.services.Repository"]

    assert descriptor.type is BindingType.SIMPLE
    assert descriptor.class_ == "tests.services.MemoryRepository"


def test_missing_class_is_not_instantiable() -> None:
    container = Container()
    container.bind("app.missing", "tests.services.DoesNotExist")

    descriptor = _compile(container).bindings["app.missing"]

    assert descriptor.type is BindingType.NOT_INSTANTIABLE
    assert not descriptor.compilable
    assert descriptor.class_ == "tests.services.DoesNotExist"


def test_unbound_interface_is_not_instantiable() -> None:
    container = Container()
    container.bind(Repository)

    descriptor = _compile(container).bindings["tests.services.Repository"]

    assert descriptor.type is BindingType.NOT_INSTANTIABLE


def test_non_portable_default_makes_binding_not_compilable() -> None:
    container = Container()
    container.bind(TupleDefaultService)

    descriptor = _compile(container).bindings["tests.services.TupleDefaultService"]

    assert descriptor.type is BindingType.COMPLEX
    assert not descriptor.compilable
    assert descriptor.dependencies[0].optional
    assert descriptor.dependencies[0].default is None


@pytest.mark.parametrize(
    "default",
    [float("nan"), float("inf"), float("-inf"), [1.0, float("nan")]],
)
def test_non_finite_float_default_makes_binding_not_compilable(default: object) -> None:
    class Meter:
        def __init__(self, ratio: float = default) -> None:  # type: ignore[assignment]
            self.ratio = ratio

    container = Container()
    container.bind(Meter)

    descriptor = next(iter(_compile(container).bindings.values()))

    assert descriptor.type is BindingType.COMPLEX
    assert not descriptor.compilable
    assert descriptor.dependencies[0].default is None


def test_finite_float_default_is_compilable() -> None:
    class Meter:
        def __init__(self, ratio: float = 0.25) -> None:
            self.ratio = ratio

    container = Container()
    container.bind(Meter)

    descriptor = next(iter(_compile(container).bindings.values()))

    assert descriptor.compilable
    assert descriptor.dependencies[0].default == 0.25


def test_positional_only_parameter_makes_binding_not_compilable() -> None:
    container = Container()
    container.bind(PositionalOnlyService)

    descriptor = _compile(container).bindings["tests.services.PositionalOnlyService"]

    assert descriptor.type is BindingType.COMPLEX
    assert not descriptor.compilable


def test_full_binding_set_classification() -> None:
    artifact = _compile(build_container())

    types = {abstract: descriptor.type for abstract, descriptor in artifact.bindings.items()}

    assert types == {
        LOGGER: BindingType.SIMPLE,
        MAILER: BindingType.COMPLEX,
        NOTIFIER: BindingType.COMPLEX,
        "tests.services.SimpleService": BindingType.SIMPLE,
        "tests.services.ServiceWithDependency": BindingType.COMPLEX,
        "tests.services.NestedService": BindingType.COMPLEX,
        "tests.services.Repository": BindingType.SIMPLE,
        "tests.services.RepositoryConsumer": BindingType.COMPLEX,
        "tests.services.Transport": BindingType.CLOSURE,
        "tests.services.Report": BindingType.COMPLEX,
    }
    assert artifact.compilable_count == 9


# endregion Classification

# region Artifact Metadata


def test_artifact_records_aliases_and_singletons() -> None:
    artifact = _compile(build_container())

    assert artifact.aliases == {"logger": LOGGER}
    assert artifact.singletons == (LOGGER, "tests.services.NestedService")


def test_artifact_is_stamped() -> None:
    before = int(time.time())

    artifact = _compile(build_container())

    assert artifact.schema_version == SCHEMA_VERSION
    assert before <= artifact.compiled_at <= int(time.time())
    assert artifact.platform_info


def test_only_registered_bindings_are_recorded() -> None:
    container = Container()
    container.bind(Notifier)

    artifact = _compile(container)

    assert set(artifact.bindings) == {NOTIFIER}


def test_empty_container_compiles_to_empty_artifact() -> None:
    artifact = _compile(Container())

    assert artifact.bindings == {}
    assert artifact.aliases == {}
    assert artifact.singletons == ()


def test_compile_logs_summary(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="conduit.compiler"):
        _compile(build_container())

    assert "Container compiled: binding_count=10 compilable_count=9" in caplog.text


# endregion Artifact Metadata

# region Analysis Without Construction


def test_compile_never_constructs_instances() -> None:
    constructed: list[str] = []

    class Explosive:
        def __init__(self, dependency: SimpleService) -> None:
            constructed.append("explosive")

    container = Container()
    container.singleton(Explosive)
    container.bind("factory", lambda _c, _p: constructed.append("factory"))

    artifact = ContainerCompiler(container).compile()

    assert constructed == []
    assert container.registry.has_instance(artifact.singletons[0]) is False


def test_compile_detects_cycle() -> None:
    with pytest.raises(ConduitCircularDependencyError) as exc_info:
        _compile(build_cyclic_container())

    assert exc_info.value.chain == (
        "tests.services.CircularA",
        "tests.services.CircularB",
        "tests.services.CircularA",
    )


def test_compile_detects_cycle_between_abstracts() -> None:
    container = Container()
    container.bind("a", "b")
    container.bind("b", "a")

    with pytest.raises(ConduitCircularDependencyError):
        _compile(container)


def test_compile_follows_aliases_in_dependency_graph() -> None:
    container = Container()
    container.singleton(Logger)
    container.alias(Logger, "logger")
    container.bind("app.logger", "logger")

    artifact = _compile(container)

    assert artifact.bindings["app.logger"].type is BindingType.UNKNOWN


def test_compiler_can_run_twice() -> None:
    compiler = ContainerCompiler(build_container())

    first = compiler.compile()
    second = compiler.compile()

    assert first.bindings == second.bindings


# endregion Analysis Without Construction
