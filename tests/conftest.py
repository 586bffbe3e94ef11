import pytest

from shcgen.keys import KeyStore, generate_key_sets

from bundle_fixtures import load_example, three_entry_bundle


# Generate key sets once per session
@pytest.fixture(scope="session")
def key_dir(tmp_path_factory):
    d = tmp_path_factory.mktemp("keys")
    generate_key_sets(d)
    return d


@pytest.fixture(scope="session")
def key_store(key_dir):
    return KeyStore(key_dir)


@pytest.fixture
def bundle():
    return load_example()


@pytest.fixture
def cross_referenced_bundle():
    return three_entry_bundle()
