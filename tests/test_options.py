import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from unityemitter import EmitterOptions, EmitterTypeError, EventRegistry, LimitOptions, check_options, load_options

ENV_KEYS = (
    "UNITYEMITTER_REJECTIONS",
    "UNITYEMITTER_LIMITS_IGNORE",
    "UNITYEMITTER_LIMITS_STORE",
    "UNITYEMITTER_LIMITS_STORAGE",
)


@pytest.fixture(autouse=True)
def _clean_env():
    for key in ENV_KEYS:
        os.environ.pop(key, None)
    yield
    for key in ENV_KEYS:
        os.environ.pop(key, None)


def test_defaults_when_nothing_given() -> None:
    options = check_options()

    assert options.rejections is False
    assert options.limits == LimitOptions(ignore=False, store=5, storage=11)
    assert EventRegistry().options == options


def test_partial_mapping_is_filled() -> None:
    options = check_options({"limits": {"store": 3}})

    assert options.rejections is False
    assert options.limits.store == 3
    assert options.limits.storage == 11
    assert options.limits.ignore is False


def test_dataclass_options_pass_through() -> None:
    given = EmitterOptions(rejections=True, limits=LimitOptions(store=2))

    assert EventRegistry.check_options(given) is given


def test_none_fields_on_dataclass_are_defaulted() -> None:
    given = EmitterOptions(rejections=None, limits=LimitOptions(store=None, storage=None, ignore=None))
    options = check_options(given)

    assert options.rejections is False
    assert options.limits == LimitOptions()


@pytest.mark.parametrize(
    ("options", "field"),
    [
        ("fast", "options"),
        ({"rejections": "yes"}, "options.rejections"),
        ({"limits": 5}, "options.limits"),
        ({"limits": {"store": "x"}}, "options.limits.store"),
        ({"limits": {"storage": "11"}}, "options.limits.storage"),
        ({"limits": {"store": True}}, "options.limits.store"),
        ({"limits": {"ignore": 1}}, "options.limits.ignore"),
    ],
)
def test_invalid_options_name_the_field(options, field) -> None:
    with pytest.raises(EmitterTypeError) as excinfo:
        EventRegistry(options)

    assert excinfo.value.field == field


def test_float_limits_are_accepted() -> None:
    emitter = EventRegistry({"limits": {"store": 2.0, "storage": 11.5}})

    assert emitter.options.limits.store == 2.0
    assert emitter.options.limits.storage == 11.5
    emitter.on("x", lambda: None).on("x", lambda: None)
    assert [len(bucket) for bucket in emitter.get_listener("x")] == [2, 0]


def test_load_options_reads_float_env_value() -> None:
    os.environ["UNITYEMITTER_LIMITS_STORAGE"] = "11.5"

    assert load_options().limits.storage == 11.5


def test_load_options_from_yaml_and_env(tmp_path: Path) -> None:
    config_path = tmp_path / "emitter.yaml"
    config_path.write_text(
        """
rejections: true
limits:
  store: 3
  storage: 20
""",
        encoding="utf-8",
    )
    env_path = tmp_path / ".env"
    env_path.write_text("UNITYEMITTER_LIMITS_STORAGE=40\n", encoding="utf-8")

    options = load_options(config_path=config_path, env_path=env_path)

    assert options.rejections is True
    assert options.limits.store == 3
    assert options.limits.storage == 40
    assert options.limits.ignore is False


def test_process_environment_wins_over_dotenv(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text("UNITYEMITTER_LIMITS_IGNORE=true\n", encoding="utf-8")
    os.environ["UNITYEMITTER_LIMITS_IGNORE"] = "false"

    options = load_options(env_path=env_path)

    assert options.limits.ignore is False


def test_load_options_defaults_without_sources() -> None:
    assert load_options() == EmitterOptions()


def test_load_options_rejects_bad_env_value() -> None:
    os.environ["UNITYEMITTER_LIMITS_STORE"] = "lots"

    with pytest.raises(EmitterTypeError) as excinfo:
        load_options()

    assert excinfo.value.field == "options.limits.store"


def test_load_options_rejects_non_mapping_document(tmp_path: Path) -> None:
    config_path = tmp_path / "emitter.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(EmitterTypeError):
        load_options(config_path=config_path)
