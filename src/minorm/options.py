from dataclasses import dataclass

from libb import ConfigOptions

__all__ = ['DatabaseOptions']


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    filename: path of the SQLite storage file (``:memory:`` for a private
    in-memory database)

    Transparent encryption (forwarded unmodified to SQLCipher):
    - cipher: cipher identifier, e.g. ``aes-256-cfb``
    - key: passphrase

    logging: log every statement with its parameters before execution
    (None keeps the current setting of the Database on reconnect)
    """
    filename: str = None
    cipher: str = None
    key: str = None
    logging: bool = None

    def __post_init__(self):
        if not self.filename:
            raise ValueError('filename is required')

    @property
    def encrypted(self) -> bool:
        return bool(self.cipher or self.key)
