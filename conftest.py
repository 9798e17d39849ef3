import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-all",
        action="store_true",
        default=False,
        help="Also run the slow system level evals in 'tests/evals'.",
    )


def pytest_configure(config):
    if config.getoption("--run-all"):
        # drop the "not slow" filter from addopts
        config.option.markexpr = ""


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(config, items):
    """Mark everything below 'tests/evals' as slow."""
    for item in items:
        if "evals" in item.path.parts:
            item.add_marker(pytest.mark.slow)
