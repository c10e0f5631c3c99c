from __future__ import annotations

from svcindex import provides


class Greeter:
    def greet(self) -> str:
        raise NotImplementedError


def test_provides_returns_the_class_unchanged() -> None:
    @provides(Greeter, priority=3)
    class English(Greeter):
        def greet(self) -> str:
            return "hello"

    assert English.__name__ == "English"
    assert English().greet() == "hello"


def test_provides_without_arguments() -> None:
    @provides()
    class French(Greeter):
        pass

    assert issubclass(French, Greeter)


def test_provides_must_be_called() -> None:
    # Applied bare, the class would be taken as the contract and replaced.
    decorator = provides(Greeter)
    assert decorator is not Greeter
    assert not isinstance(decorator, type)

    class Spanish(Greeter):
        pass

    assert decorator(Spanish) is Spanish
