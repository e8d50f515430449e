import io
from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import ConfigurationError
from core.storage import LocalStorage
from core.storage.cli import main


@pytest.fixture()
def config_file(tmp_path):
    config = tmp_path / "tempdrop.yaml"
    config.write_text(
        f"storage:\n  backend: local\n  local_root: {tmp_path / 'uploads'}\n",
        encoding="utf-8",
    )
    return config


def test_purge_command_removes_expired_uploads(tmp_path, config_file):
    storage = LocalStorage(tmp_path / "uploads")
    now = datetime.now(timezone.utc)
    storage.put("a/old.txt", io.BytesIO(b"old"), expires_at=now - timedelta(seconds=1))
    storage.put("b/new.txt", io.BytesIO(b"new"), expires_at=now + timedelta(hours=1))

    assert main(["--config", str(config_file), "purge"]) == 0

    assert not (tmp_path / "uploads" / "a").exists()
    assert (tmp_path / "uploads" / "b" / "new.txt").exists()


def test_lifecycle_command_requires_s3(config_file):
    with pytest.raises(ConfigurationError):
        main(["--config", str(config_file), "lifecycle"])
