import pytest

from smartcalc import CalculatorConfig, REPL, VariableEnvironment


@pytest.fixture
def env():
    return VariableEnvironment()


@pytest.fixture
def repl():
    return REPL(CalculatorConfig(interactive=False, show_banner=False))


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        print(f"TEST: {item.name} - {'PASSED' if report.passed else 'FAILED'}")
