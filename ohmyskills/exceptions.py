"""Custom exceptions for OhMySkills."""


class OhMySkillsError(Exception):
    """Base exception for OhMySkills."""

    pass


class NotFoundError(OhMySkillsError):
    """A skill, anchor file, or config file does not exist."""

    pass


class InvalidInputError(OhMySkillsError):
    """Malformed archive, encoding, reference, or config document."""

    pass


class UnsupportedError(OhMySkillsError):
    """Operation not available for the requested agent."""

    def __init__(self, agent: str, message: str):
        super().__init__(f"{message} ({agent})")
        self.agent = agent


class InstallError(OhMySkillsError):
    """Skill installation failed."""

    pass


class InvalidSourceError(InstallError, InvalidInputError):
    """The install source (URL, base64 payload, derived name) is unusable."""

    pass


class ArchiveError(InstallError, InvalidInputError):
    """The uploaded archive could not be read."""

    pass


class AnchorNotFoundError(ArchiveError, NotFoundError):
    """No SKILL.md inside the archive."""

    def __init__(self, message: str = "No SKILL.md found in ZIP"):
        super().__init__(message)


class NetworkError(InstallError):
    """HTTP request failed or returned an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(InstallError, InvalidInputError):
    """Remote endpoint answered with an unexpected payload."""

    pass
