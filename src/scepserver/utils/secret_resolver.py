"""
Resolution of secrets configured either inline or through a file.

Used for the CA key passphrase and for the challenge password. Each call is
independent: the same rules apply to both secrets.
"""

from pathlib import Path

from loguru import logger

from scepserver.domain.errors import ConfigurationConflict, SecretUnavailable


def resolve_secret(
    inline: str,
    file_path: str,
    name: str = "secret",
    file_name: str | None = None,
) -> str:
    """
    Return the effective value of a secret.

    Exactly one source may be set. File contents have every newline removed,
    so files written with a trailing newline resolve to the bare secret.

    Args:
        inline: Secret given directly ("" if unset)
        file_path: Path of a file holding the secret ("" if unset)
        name: Option name of the inline source, used in error messages
        file_name: Option name of the file source (defaults to ``{name}File``)

    Returns:
        The secret, or "" when neither source is set

    Raises:
        ConfigurationConflict: If both sources are set
        SecretUnavailable: If the file can not be read
    """
    if inline and file_path:
        raise ConfigurationConflict(name, file_name or f"{name}File")

    if file_path:
        try:
            content = Path(file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SecretUnavailable(file_path, str(e)) from e
        logger.debug(f"Loaded {name} from {file_path}")
        return content.replace("\n", "")

    return inline
