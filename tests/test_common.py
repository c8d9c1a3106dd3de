from flinkoperator.common import EnvVar, copy_map, duplicate_map, get_env_var


def test_duplicate_map_none_gives_empty():
    assert duplicate_map(None) == {}


def test_duplicate_map_is_independent_copy():
    original = {"a": "1", "b": "2"}
    dup = duplicate_map(original)
    assert dup == original
    dup["c"] = "3"
    assert "c" not in original


def test_copy_map_empty_source_returns_target():
    target = {"a": "1"}
    assert copy_map(target, {}) is target
    assert copy_map(None, None) is None
    assert copy_map(None, {}) is None


def test_copy_map_into_none_creates_dict():
    source = {"a": "1"}
    result = copy_map(None, source)
    assert result == source
    assert result is not source


def test_copy_map_merges_and_overwrites():
    target = {"a": "1", "b": "2"}
    result = copy_map(target, {"b": "20", "c": "3"})
    assert result is target
    assert target == {"a": "1", "b": "20", "c": "3"}


def test_copy_map_empty_target_is_not_mutated():
    target: dict[str, str] = {}
    result = copy_map(target, {"k": "v"})
    assert result == {"k": "v"}
    assert target == {}


def test_get_env_var_found():
    envs = [EnvVar("A", "1"), EnvVar("B", "2")]
    found = get_env_var(envs, "B")
    assert found == EnvVar("B", "2")
    found.value = "changed"
    assert envs[1].value == "2"


def test_get_env_var_first_match():
    envs = [EnvVar("A", "first"), EnvVar("A", "second")]
    assert get_env_var(envs, "A").value == "first"


def test_get_env_var_missing():
    assert get_env_var([EnvVar("A", "1")], "Z") is None
    assert get_env_var([], "A") is None


def test_env_var_field_path():
    env = get_env_var([EnvVar("HOST_IP", field_path="status.podIP")], "HOST_IP")
    assert env.field_path == "status.podIP"
    assert env.value == ""