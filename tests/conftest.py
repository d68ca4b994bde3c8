pytest_plugins = [
    "tests.fixtures.app_client",
    "tests.fixtures.images",
    "tests.fixtures.threads",
]
