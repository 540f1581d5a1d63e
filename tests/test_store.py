"""
EnvStore tests - loading, overrides, cache operations and the load state machine.
"""
import pytest

from tinyenv.cache import EnvCache, default_cache
from tinyenv.errors import (
    DangerousValueError,
    FileAccessError,
    InvalidKeyError,
    MalformedLineError,
    NoFileFoundError,
    RecursiveSubstitutionError,
)
from tinyenv.store import EnvStore

SAMPLE_ENV = """\
# Application
APP_NAME=TinyEnv
APP_DEBUG=true
MY_IP=127.0.0.1
MY_TEXT=8.7
EMPTY_VALUE=
NULL_VALUE=null
INTERPOLATED_VALUE=${MY_IP}_suffix
DEFAULTED_VALUE=${UNDEFINED_VAR:-yes}
USER_NAME=
USER=${USER_NAME:-guest}
ALT_USER=${USER_NAME-guest}
DB_HOST=localhost
DB_PORT=3306
DB_URL=${DB_HOST}:${DB_PORT}
FORCED=/123/
"""


@pytest.fixture
def sample_root(write_env):
    return write_env(SAMPLE_ENV)


class TestLoad:
    """Strict and tolerant loading."""

    def test_load_and_get(self, make_store, sample_root):
        store = make_store(sample_root).load()
        assert store.loaded
        assert store.get("APP_NAME") == "TinyEnv"
        assert store.get("APP_DEBUG") is True
        assert store.get("MY_TEXT") == 8.7
        assert store.get("EMPTY_VALUE") is None
        assert store.get("NULL_VALUE") is None
        assert store.get("INTERPOLATED_VALUE") == "127.0.0.1_suffix"
        assert store.get("DEFAULTED_VALUE") is True
        assert store.get("USER") == "guest"
        assert store.get("ALT_USER") == ""
        assert store.get("DB_URL") == "localhost:3306"
        assert store.get("FORCED") == "123"

    def test_load_specific_keys(self, make_store, sample_root):
        store = make_store(sample_root).load(["MY_TEXT"])
        assert store.get("MY_TEXT") == 8.7
        assert store.get("APP_NAME") is None

    def test_load_single_key_given_as_string(self, make_store, write_env):
        root = write_env("AB=1\nA=2\nB=3\n")
        store = make_store(root).load("AB")
        assert store.get("AB") == 1
        assert store.get("A") is None
        assert store.get("B") is None

    def test_safe_load_single_key_given_as_string(self, make_store, write_env):
        root = write_env("AB=1\nA=2\nBADLINE\n")
        store = make_store(root).safe_load("AB")
        assert store.get("AB") == 1
        assert store.get("A") is None

    def test_utf8_bom_file_loads_strictly(self, make_store, tmp_path):
        (tmp_path / ".env").write_bytes("\ufeffAPP=1\n".encode("utf-8"))
        assert make_store(tmp_path).load().get("APP") == 1

    def test_load_is_idempotent_until_forced(self, make_store, sample_root):
        store = make_store(sample_root).load()
        (sample_root / ".env").write_text("APP_NAME=Changed\n", encoding="utf-8")
        store.load()
        assert store.get("APP_NAME") == "TinyEnv"
        store.load(force_reload=True)
        assert store.get("APP_NAME") == "Changed"

    def test_force_reload_produces_identical_snapshot(self, make_store, sample_root):
        store = make_store(sample_root).load()
        first = store.get()
        store.load(force_reload=True)
        assert store.get() == first

    def test_missing_file_is_fatal_by_default(self, make_store, tmp_path):
        with pytest.raises(NoFileFoundError):
            make_store(tmp_path).load()

    def test_missing_file_is_tolerated_on_request(self, make_store, tmp_path):
        store = make_store(tmp_path).load(tolerant=True)
        assert store.loaded
        assert store.get() == {}

    def test_safe_load(self, make_store, write_env):
        root = write_env("OK=1\nBADLINE\n")
        store = make_store(root).safe_load()
        assert store.get("OK") == 1

    def test_malformed_line_strict_vs_tolerant(self, make_store, write_env):
        root = write_env("OK=1\nBADLINE\nANOTHER=2\n")
        with pytest.raises(MalformedLineError):
            make_store(root).load()

        store = make_store(root).load(tolerant=True)
        assert store.get("OK") == 1
        assert store.get("ANOTHER") == 2

    def test_broken_file_commits_nothing(self, make_store, write_env):
        root = write_env("FIRST=1\nBADLINE\n")
        store = make_store(root)
        with pytest.raises(MalformedLineError):
            store.load()
        assert "FIRST" not in store.cache
        assert not store.loaded

    def test_recursive_substitution_aborts_load(self, make_store, write_env):
        root = write_env("A=${B}\nB=${C}\nC=${A}\n")
        with pytest.raises(RecursiveSubstitutionError, match="A -> B -> C -> A"):
            make_store(root).load()

    def test_dangerous_value_aborts_load(self, make_store, write_env):
        root = write_env("EVIL=php://filter/convert.base64-encode/resource=php://input\n")
        with pytest.raises(DangerousValueError, match="rejected dangerous env value"):
            make_store(root).load(tolerant=True)

    def test_unreadable_file_strict_vs_tolerant(self, make_store, tmp_path):
        (tmp_path / ".env").mkdir()
        with pytest.raises(FileAccessError):
            make_store(tmp_path).load()
        assert make_store(tmp_path).load(tolerant=True).get() == {}


class TestFileOrder:
    """Root directory x file name iteration."""

    def test_later_files_override_earlier(self, make_store, write_env):
        root = write_env("KEY=base\nONLY_BASE=1\n")
        write_env("KEY=local\n", name=".env.local")
        store = make_store(root, files=[".env", ".env.local"]).load()
        assert store.get("KEY") == "local"
        assert store.get("ONLY_BASE") == 1

    def test_base_file_is_forced_first(self, make_store, write_env):
        root = write_env("KEY=base\n")
        write_env("KEY=local\n", name=".env.local")
        store = make_store(root)
        store.configure_files([".env.local", ".env", ".env.local"])
        assert store.files == [".env", ".env.local"]
        assert store.load().get("KEY") == "local"

    def test_configure_files_requires_a_name(self, make_store, tmp_path):
        with pytest.raises(ValueError):
            make_store(tmp_path).configure_files([])

    def test_later_roots_override_earlier(self, make_store, write_env, tmp_path):
        first = write_env("KEY=first\n", root=tmp_path / "a")
        second = write_env("KEY=second\n", root=tmp_path / "b")
        assert make_store([first, second]).load().get("KEY") == "second"

    def test_missing_files_are_skipped_when_one_exists(self, make_store, write_env):
        root = write_env("KEY=base\n")
        store = make_store(root, files=[".env", ".env.production"]).load()
        assert store.get("KEY") == "base"

    def test_later_file_sees_earlier_values(self, make_store, write_env):
        root = write_env("HOST=db\n")
        write_env("URL=${HOST}:5432\n", name=".env.local")
        store = make_store(root, files=[".env", ".env.local"]).load()
        assert store.get("URL") == "db:5432"


class TestAccess:
    """get, get_or_insert, set_cache_entry and clear_cache."""

    def test_get_missing_returns_default_without_persisting(self, make_store, tmp_path):
        store = make_store(tmp_path)
        assert store.get("MISSING") is None
        assert store.get("MISSING", "dflt") == "dflt"
        assert store.get("MISSING") is None

    def test_get_or_insert_persists_default(self, make_store, tmp_path):
        store = make_store(tmp_path)
        assert store.get_or_insert("MISSING", "dflt") == "dflt"
        assert store.get("MISSING") == "dflt"
        assert store.get_or_insert("MISSING", "other") == "dflt"

    def test_get_or_insert_coerces_default(self, make_store, tmp_path):
        store = make_store(tmp_path)
        assert store.get_or_insert("TIMEOUT", "30") == 30
        assert store.get_or_insert("FEATURE_ENABLED", False) is False

    def test_get_falls_back_to_superglobal_table(self, make_store, tmp_path):
        store = make_store(tmp_path, environ={"FROM_ENV": "on"})
        assert store.get("FROM_ENV") is True

    def test_set_cache_entry_coerces(self, make_store, tmp_path):
        store = make_store(tmp_path)
        store.set_cache_entry("X_TEST", "42")
        assert store.get("X_TEST") == 42
        with pytest.raises(DangerousValueError):
            store.set_cache_entry("EVIL", "phar://x")

    def test_clear_single_key(self, make_store, tmp_path):
        store = make_store(tmp_path)
        store.set_cache_entry("CACHE_TEST", "cached_value")
        assert store.get("CACHE_TEST") == "cached_value"
        store.clear_cache("CACHE_TEST")
        assert store.get("CACHE_TEST") is None

    def test_clear_everything_allows_reload(self, make_store, sample_root):
        store = make_store(sample_root).load()
        store.clear_cache()
        assert store.get() == {}
        assert not store.loaded
        assert store.load().get("APP_NAME") == "TinyEnv"

    def test_default_cache_is_shared(self, tmp_path, write_env):
        root = write_env("SHARED_KEY=1\n")
        EnvStore(root, environ={}).load()
        assert EnvStore(tmp_path, environ={}).get("SHARED_KEY") == 1
        assert default_cache().get("SHARED_KEY") == 1

    def test_stores_with_own_caches_are_isolated(self, make_store, write_env):
        root = write_env("ISOLATED=1\n")
        make_store(root).load()
        assert make_store(root).get("ISOLATED") is None


class TestMirroring:
    """Opt-in mirroring into the superglobal table."""

    def test_mirroring_is_off_by_default(self, make_store, sample_root):
        environ = {}
        make_store(sample_root, environ=environ).load()
        assert environ == {}

    def test_populate_environ(self, make_store, sample_root):
        environ = {}
        store = make_store(sample_root, environ=environ).populate_environ()
        store.load()
        assert environ["APP_NAME"] == "TinyEnv"
        assert environ["APP_DEBUG"] == "true"
        assert environ["NULL_VALUE"] == ""
        assert store.get()["MY_TEXT"] == 8.7

    def test_get_all_merges_superglobal_table_when_mirroring(self, make_store, write_env):
        root = write_env("A=1\n")
        store = make_store(root, environ={"OUTSIDE": "x"}, populate_environ=True).load()
        assert store.get() == {"OUTSIDE": "x", "A": 1}

    def test_unload_removes_mirrored_keys(self, make_store, sample_root):
        environ = {"UNRELATED": "keep"}
        store = make_store(sample_root, environ=environ, populate_environ=True).load()
        store.unload()
        assert environ == {"UNRELATED": "keep"}


class TestLifecycle:
    """lazy, only, unload and refresh."""

    def test_lazy_loads_matching_prefixes(self, make_store, sample_root):
        store = make_store(sample_root).lazy(["DB_"])
        assert store.get("DB_HOST") == "localhost"
        assert store.get("DB_URL") == "localhost:3306"
        assert store.get("APP_NAME") is None

    def test_lazy_from_constructor(self, make_store, sample_root):
        store = make_store(sample_root, lazy_prefixes=["APP"])
        assert store.get("APP_NAME") == "TinyEnv"
        assert store.get("MY_TEXT") is None

    def test_fast_load_from_constructor(self, make_store, sample_root):
        assert make_store(sample_root, fast_load=True).get("APP_NAME") == "TinyEnv"

    def test_only(self, make_store, sample_root):
        store = make_store(sample_root).load(["APP_NAME"])
        store.only("MY_TEXT")
        assert store.get("MY_TEXT") == 8.7
        store.only(["MY_IP"], reset=True)
        assert store.get("MY_IP") == "127.0.0.1"
        assert store.get("APP_NAME") is None

    def test_unload_removes_only_owned_keys(self, make_store, sample_root):
        cache = EnvCache({"SEEDED": "keep"})
        store = make_store(sample_root, cache=cache).load()
        store.unload()
        assert not store.loaded
        assert store.get("APP_NAME") is None
        assert store.get("SEEDED") == "keep"

    def test_refresh_rereads_files(self, make_store, sample_root):
        store = make_store(sample_root).load()
        (sample_root / ".env").write_text("APP_NAME=Refreshed\n", encoding="utf-8")
        store.refresh()
        assert store.get("APP_NAME") == "Refreshed"
        assert store.get("MY_TEXT") is None


class TestSetenv:
    """Runtime writes and the flat-file round trip."""

    def test_setenv_updates_cache_and_file(self, make_store, sample_root):
        store = make_store(sample_root).load()
        store.setenv("APP_NAME", "Renamed")
        store.setenv("NEW_FLAG", True)
        assert store.get("APP_NAME") == "Renamed"
        content = (sample_root / ".env").read_text(encoding="utf-8")
        assert "APP_NAME=Renamed\n" in content
        assert content.endswith("NEW_FLAG=true\n")

        reloaded = make_store(sample_root).load()
        assert reloaded.get("APP_NAME") == "Renamed"
        assert reloaded.get("NEW_FLAG") is True

    def test_setenv_creates_missing_file(self, make_store, tmp_path):
        make_store(tmp_path).setenv("PORT", 8080)
        assert (tmp_path / ".env").read_text(encoding="utf-8") == "PORT=8080\n"

    def test_setenv_respects_disabled_file_writes(self, make_store, tmp_path):
        EnvStore.set_allow_file_writes(False)
        store = make_store(tmp_path)
        store.setenv("PORT", "8080")
        assert store.get("PORT") == 8080
        assert not (tmp_path / ".env").exists()

    @pytest.mark.parametrize("key", ["lower", "WITH-DASH", ""])
    def test_setenv_rejects_invalid_keys(self, make_store, tmp_path, key):
        with pytest.raises(InvalidKeyError):
            make_store(tmp_path).setenv(key, "x")

    def test_setenv_rejects_non_scalars(self, make_store, tmp_path):
        with pytest.raises(TypeError):
            make_store(tmp_path).setenv("LIST", [1, 2])

    def test_setenv_rejects_multiline_values(self, make_store, write_env):
        root = write_env("A=1\n")
        store = make_store(root).load()
        with pytest.raises(ValueError):
            store.setenv("A", "x\nB=2")
        assert store.get("A") == 1
        assert store.get("B") is None
        assert (root / ".env").read_text(encoding="utf-8") == "A=1\n"

    def test_setenv_replaces_exported_declaration(self, make_store, write_env):
        root = write_env("export PORT=80\n")
        store = make_store(root).load()
        store.setenv("PORT", 8080)
        assert (root / ".env").read_text(encoding="utf-8") == "PORT=8080\n"
        assert make_store(root).load().get("PORT") == 8080


def test_system_get_is_memoized(monkeypatch):
    monkeypatch.setenv("TINYENV_SYS_PROBE", "first")
    assert EnvStore.system_get("TINYENV_SYS_PROBE") == "first"
    monkeypatch.setenv("TINYENV_SYS_PROBE", "second")
    assert EnvStore.system_get("TINYENV_SYS_PROBE") == "first"


def test_system_get_returns_empty_string_when_unset(monkeypatch):
    monkeypatch.delenv("NON_EXISTENT_SYS_VAR", raising=False)
    assert EnvStore.system_get("NON_EXISTENT_SYS_VAR") == ""
