import json
import stat

from laptop_installer.install_config import InstallSecrets
from laptop_installer.state_store import ensure_defaults, load_state, save_state


def test_secrets_never_written(tmp_path):
    path = tmp_path / "state.json"
    state = ensure_defaults({"config": {"hostname": "xps013"}})
    state["secrets"] = InstallSecrets(password="abc123", luks_passphrase="disk-pass")

    save_state(str(path), state)

    text = path.read_text()
    assert "abc123" not in text and "disk-pass" not in text
    assert "secrets" not in json.loads(text)
    assert "secrets" in state
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_yaml_state(tmp_path):
    path = tmp_path / "state.yaml"
    state = ensure_defaults({"config": {"hostname": "xps013", "encrypted": True}})
    save_state(str(path), state)

    loaded = load_state(str(path))
    assert loaded["config"] == {"hostname": "xps013", "encrypted": True}
    assert loaded["execution"]["completed_steps"] == []


def test_missing_state_is_empty(tmp_path):
    assert load_state(str(tmp_path / "nope.json")) == {}
