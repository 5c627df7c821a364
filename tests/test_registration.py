import dataclasses
import unittest

import pytest

from litewire import (
    DEPENDENCIES,
    ContainerBuilder,
    DependencyCountMismatchError,
    InternalConsistencyError,
    Lifetime,
    RegistrationError,
    ServiceDescriptor,
    ServiceStyle,
    depends_on,
    identity,
)


class TestBuilderRegistration(unittest.TestCase):
    builder: ContainerBuilder

    def setUp(self):
        self.builder = ContainerBuilder()

    def test_register_methods_return_builder_for_chaining(self):
        class A: ...

        a, b, c = identity("A"), identity("B"), identity("C")

        assert self.builder.register_instance(a, A()) is self.builder
        assert self.builder.register_factory(Lifetime.TRANSIENT, b, lambda _: A()) is self.builder
        assert self.builder.register_injected(Lifetime.SINGLETON, c, A) is self.builder
        assert len(self.builder) == 3
        assert a in self.builder

    def test_reregistering_identity_replaces_descriptor(self):
        key = identity("Value")
        self.builder.register_instance(key, "first")
        self.builder.register_factory(Lifetime.TRANSIENT, key, lambda _: "second")

        cont = self.builder.build()

        assert len(self.builder) == 1
        assert cont.retrieve(key) == "second"

    def test_distinct_identity_with_taken_name_raises(self):
        self.builder.register_instance(identity("Cache"), object())

        with pytest.raises(RegistrationError, match="Cache"):
            self.builder.register_instance(identity("Cache"), object())

    def test_non_identity_key_raises(self):
        with pytest.raises(RegistrationError):
            self.builder.register_instance("Cache", object())  # type: ignore[arg-type]

    def test_non_callable_factory_raises(self):
        with pytest.raises(RegistrationError):
            self.builder.register_factory(Lifetime.SINGLETON, identity("A"), 42)  # type: ignore[arg-type]

    def test_lifetime_must_be_enum_member(self):
        with pytest.raises(RegistrationError):
            self.builder.register_factory("singleton", identity("A"), lambda _: 1)  # type: ignore[arg-type]

    def test_build_takes_snapshot(self):
        first = identity("First")
        late = identity("Late")
        self.builder.register_instance(first, 1)
        cont = self.builder.build()

        self.builder.register_instance(late, 2)

        assert first in cont
        assert late not in cont
        assert "Late" not in cont
        assert late in self.builder.build()

    def test_each_build_has_its_own_singleton_cache(self):
        key = identity("A")
        self.builder.register_factory(Lifetime.SINGLETON, key, lambda _: object())

        first = self.builder.build()
        second = self.builder.build()

        assert first.retrieve(key) is first.retrieve(key)
        assert first.retrieve(key) is not second.retrieve(key)


class TestInjectedArity(unittest.TestCase):
    builder: ContainerBuilder

    def setUp(self):
        self.builder = ContainerBuilder()

    def test_declared_dependencies_without_constructor_parameters_raises(self):
        class Y:
            __dependencies__ = ("X",)

        with pytest.raises(DependencyCountMismatchError, match="(?i)dependency count mismatch"):
            self.builder.register_injected(Lifetime.SINGLETON, identity("Y"), Y)

    def test_constructor_parameters_without_declaration_raises(self):
        class Y:
            def __init__(self, x):
                self.x = x

        with pytest.raises(DependencyCountMismatchError):
            self.builder.register_injected(Lifetime.SINGLETON, identity("Y"), Y)

    def test_mismatch_is_raised_before_any_retrieval(self):
        @depends_on("A", "B")
        class Y:
            def __init__(self, a):
                self.a = a

        with pytest.raises(TypeError):
            self.builder.register_injected(Lifetime.TRANSIENT, identity("Y"), Y)
        assert len(self.builder) == 0

    def test_parameters_with_defaults_are_not_counted(self):
        @depends_on("A")
        class Y:
            def __init__(self, a, retries=3):
                self.a = a
                self.retries = retries

        a, y = identity("A"), identity("Y")
        cont = self.builder.register_instance(a, "a").register_injected(Lifetime.TRANSIENT, y, Y).build()

        built = cont.retrieve(y)
        assert built.a == "a"
        assert built.retries == 3

    def test_required_keyword_only_parameter_raises(self):
        @depends_on("A")
        class Y:
            def __init__(self, a, *, b):
                self.a = a
                self.b = b

        with pytest.raises(DependencyCountMismatchError, match="keyword-only"):
            self.builder.register_injected(Lifetime.TRANSIENT, identity("Y"), Y)

    def test_plain_function_can_be_injected(self):
        @depends_on("Host", "Port")
        def make_url(host, port):
            return f"http://{host}:{port}"

        url = identity("Url")
        cont = (
            self.builder.register_instance(identity("Host"), "localhost")
            .register_instance(identity("Port"), 8080)
            .register_injected(Lifetime.SINGLETON, url, make_url)
            .build()
        )

        assert cont.retrieve(url) == "http://localhost:8080"

    def test_dependencies_attribute_as_single_string_raises(self):
        class Y:
            __dependencies__ = "X"

            def __init__(self, x):
                self.x = x

        with pytest.raises(RegistrationError, match="single string"):
            self.builder.register_injected(Lifetime.TRANSIENT, identity("Y"), Y)


class TestDependsOn(unittest.TestCase):
    def test_sets_dependencies_attribute_as_tuple(self):
        @depends_on("A", "B")
        class Y:
            def __init__(self, a, b): ...

        assert getattr(Y, DEPENDENCIES) == ("A", "B")

    def test_returns_target_unchanged(self):
        def build(): ...

        assert depends_on()(build) is build

    def test_invalid_names_raise(self):
        with pytest.raises(RegistrationError):
            depends_on("A", "")
        with pytest.raises(RegistrationError):
            depends_on(identity("A"))  # type: ignore[arg-type]

    def test_subclass_inherits_declaration(self):
        @depends_on("A")
        class Base:
            def __init__(self, a):
                self.a = a

        class Derived(Base): ...

        descriptor = ServiceDescriptor.for_injected(Lifetime.TRANSIENT, identity("Derived"), Derived)
        assert descriptor.dependencies == ("A",)


class TestServiceDescriptor(unittest.TestCase):
    def test_labels_name_lifetime_and_style(self):
        @depends_on("A")
        class Impl:
            def __init__(self, a): ...

        instance = ServiceDescriptor.for_instance(identity("Config"), {})
        factory = ServiceDescriptor.for_factory(Lifetime.TRANSIENT, identity("Handler"), lambda _: None)
        injected = ServiceDescriptor.for_injected(Lifetime.SINGLETON, identity("Repo"), Impl)

        assert str(instance) == "<singleton instance of Config>"
        assert str(factory) == "<transient factory of Handler>"
        assert str(injected) == "<singleton injected of Impl>"

    def test_instance_descriptor_ignores_provider(self):
        value = object()
        descriptor = ServiceDescriptor.for_instance(identity("V"), value)

        assert descriptor.style is ServiceStyle.INSTANCE
        assert descriptor.lifetime is Lifetime.SINGLETON
        assert descriptor.construct(None) is value
        assert descriptor.dependencies == ()

    def test_descriptor_is_immutable(self):
        descriptor = ServiceDescriptor.for_instance(identity("V"), 1)

        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.lifetime = Lifetime.TRANSIENT  # type: ignore[misc]

    def test_injected_style_requires_implementation(self):
        with pytest.raises(InternalConsistencyError):
            ServiceDescriptor(identity("V"), Lifetime.TRANSIENT, ServiceStyle.INJECTED, lambda _: None)

        with pytest.raises(InternalConsistencyError):
            ServiceDescriptor(identity("V"), Lifetime.TRANSIENT, ServiceStyle.FACTORY, lambda _: None, object)
