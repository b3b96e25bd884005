"""Named profiles: saved planning parameters that can be reused later."""

import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from renameutil.models.rename import InputParams


logger = logging.getLogger(__name__)


class Profile(BaseModel):
    """Planning parameters plus the execution options saved alongside them."""

    params: InputParams = Field(default_factory=InputParams)
    backup: bool = Field(default=False, description="Back up the target directory before renaming")


class _ProfileFile(BaseModel):
    profiles: dict[str, Profile] = Field(default_factory=dict)


class ProfileStore:
    """Profiles kept in a single JSON file, keyed by name."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> _ProfileFile:
        if not self.path.exists():
            return _ProfileFile()
        try:
            return _ProfileFile.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable profile file %s: %s", self.path, e)
            return _ProfileFile()

    def _write(self, data: _ProfileFile) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(data.model_dump_json(indent=2), encoding="utf-8")

    @staticmethod
    def _key(name: str) -> str:
        key = name.strip()
        if not key:
            raise ValueError("Profile name cannot be empty.")
        return key

    def names(self) -> list[str]:
        return sorted(self._read().profiles)

    def load(self, name: str) -> Profile | None:
        return self._read().profiles.get(self._key(name))

    def save(self, name: str, profile: Profile) -> None:
        """Save ``profile`` under ``name``, replacing any profile with that name."""
        data = self._read()
        data.profiles[self._key(name)] = profile
        self._write(data)
        logger.info("Saved profile '%s' to %s", name.strip(), self.path)

    def delete(self, name: str) -> bool:
        """Delete a profile. Returns False if no profile had that name."""
        data = self._read()
        if data.profiles.pop(self._key(name), None) is None:
            return False
        self._write(data)
        return True
