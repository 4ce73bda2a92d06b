import logging

from laptop_installer.logging_utils import configure_logging


def test_unwritable_log_path_falls_back_to_cwd_once(tmp_path, monkeypatch):
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    monkeypatch.delattr(root, "_laptop_installer_log_path", raising=False)
    monkeypatch.chdir(tmp_path)
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    try:
        chosen = configure_logging(log_path=str(blocker / "sub" / "x.log"), also_console=False)
        assert chosen == str(tmp_path / "laptop-installer.log")
        assert configure_logging(log_path=str(tmp_path / "other.log")) == chosen
        assert len(root.handlers) == len(before) + 1
    finally:
        for handler in [h for h in root.handlers if h not in before]:
            root.removeHandler(handler)
            handler.close()
        root.setLevel(level)
        if hasattr(root, "_laptop_installer_log_path"):
            delattr(root, "_laptop_installer_log_path")
