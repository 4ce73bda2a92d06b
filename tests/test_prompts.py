import pytest

from laptop_installer.errors import AbortedByUser, ValidationError
from laptop_installer.install_config import InstallConfig
from laptop_installer.lib import prompts


def test_validate_passwords():
    prompts.validate_passwords("s3cret", "s3cret")
    with pytest.raises(ValidationError, match="do not match"):
        prompts.validate_passwords("a", "b")
    with pytest.raises(ValidationError, match="empty"):
        prompts.validate_passwords("", "")


def test_luks_passphrase_must_differ_from_account_password():
    prompts.validate_luks_passphrase("disk-pass", "disk-pass", "abc123")
    with pytest.raises(ValidationError, match="differ"):
        prompts.validate_luks_passphrase("abc123", "abc123", "abc123")
    with pytest.raises(ValidationError, match="do not match"):
        prompts.validate_luks_passphrase("x", "y", "abc123")
    with pytest.raises(ValidationError, match="empty"):
        prompts.validate_luks_passphrase("", "", "abc123")


def test_parse_helpers():
    assert prompts.parse_swap_gib("16") == 16
    assert prompts.parse_install_type("1") is True
    assert prompts.parse_install_type("2") is False
    with pytest.raises(ValidationError):
        prompts.parse_swap_gib("lots")
    with pytest.raises(ValidationError):
        prompts.parse_swap_gib("-4")
    with pytest.raises(ValidationError):
        prompts.parse_install_type("3")


def test_hostname_and_username_rules():
    assert prompts.is_valid_hostname("xps013")
    assert prompts.is_valid_hostname("laptop.lan")
    assert not prompts.is_valid_hostname("-bad")
    assert not prompts.is_valid_hostname("")
    assert prompts.is_valid_username("player1")
    assert not prompts.is_valid_username("Root User")


def test_defaults_applied_on_empty_input(answers):
    ask = answers(["", "", "", "", "", "", "2", "", "y"])
    secret = answers(["pw", "pw"])

    cfg, secrets = prompts.collect_config(InstallConfig(disk="/dev/sda"), ask=ask, ask_secret=secret)

    assert cfg == InstallConfig(disk="/dev/sda", encrypted=False)
    assert secrets.password == "pw"
    assert secrets.luks_passphrase is None


def test_reused_luks_passphrase_is_rejected_and_reprompted(answers, capsys):
    ask = answers(["xps013", "msd", "", "", "", "16", "1", "n", "y"])
    secret = answers(["abc123", "abc123", "abc123", "abc123", "disk-only", "disk-only"])

    cfg, secrets = prompts.collect_config(InstallConfig(), ask=ask, ask_secret=secret)

    assert cfg.encrypted and not cfg.snapshots
    assert cfg.hostname == "xps013" and cfg.username == "msd"
    assert secrets.luks_passphrase == "disk-only"
    assert secret.asked["LUKS Password: "] == 2
    assert "must differ" in capsys.readouterr().out


def test_luks_attempt_limit():
    with pytest.raises(ValidationError):
        prompts.collect_luks_passphrase(lambda _: "same", "same", attempts=1)


def test_password_mismatch_is_fatal(answers):
    ask = answers(["", "", "", "", "", "", "2", ""])
    secret = answers(["one", "two"])
    with pytest.raises(ValidationError):
        prompts.collect_config(InstallConfig(), ask=ask, ask_secret=secret)


def test_declined_confirmation_aborts(answers):
    ask = answers(["", "", "", "", "", "", "2", "", "N"])
    secret = answers(["pw", "pw"])
    with pytest.raises(AbortedByUser):
        prompts.collect_config(InstallConfig(), ask=ask, ask_secret=secret)


def test_invalid_hostname_reprompts(answers):
    ask = answers(["bad host!", "goodhost", "", "", "", "", "", "2", "", "y"])
    cfg, _ = prompts.collect_config(InstallConfig(), ask=ask, ask_secret=answers(["pw", "pw"]))
    assert cfg.hostname == "goodhost"


def test_secrets_repr_is_redacted():
    from laptop_installer.install_config import InstallSecrets

    assert "hunter2" not in repr(InstallSecrets(password="hunter2", luks_passphrase="x"))


def test_locked_layout_keeps_swap_and_install_type(answers, capsys):
    # hostname, username, locale, keymap, timezone, snapshots, confirm
    ask = answers(["", "", "", "", "", "", "y"])
    secret = answers(["pw", "pw"])
    saved = InstallConfig(disk="/dev/sda", swap_gib=8, encrypted=False)

    cfg, secrets = prompts.collect_config(saved, ask=ask, ask_secret=secret, layout_locked=True)

    assert cfg == saved
    assert secrets.luks_passphrase is None
    assert "Enter choice [1/2]: " not in ask.asked
    assert "keeping swap 8 GiB, non-encrypted" in capsys.readouterr().out
