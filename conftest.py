"""
Pytest configuration for the geno test suite.

This configuration enables the --full flag to run integration tests that
need a real compiler installed.
"""


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (needs a toolchain)",
    )


def pytest_configure(config):
    """Configure pytest based on command-line options."""
    if config.getoption("--full"):
        # Remove the default marker expression that excludes integration tests
        markexpr = config.getoption("-m", "")
        if markexpr == "not integration":
            config.option.markexpr = ""
