class ArcadeError(Exception):
    """Base class for every error raised by the outcome/attestation core."""


class ConfigurationError(ArcadeError):
    """Startup configuration is missing or malformed."""


class InvalidBetError(ArcadeError):
    """Bet parameters are missing or out of range. Raised before any draw."""


class CanonicalEncodingError(InvalidBetError):
    """A field does not fit the type the verifier expects."""


class SessionNotFoundError(ArcadeError):
    """No active crash session for (player, nonce)."""


class SessionAlreadyActiveError(ArcadeError):
    """The (player, nonce) game was already started."""


class NonceReusedError(SessionAlreadyActiveError):
    """A nonce that already has an outcome was sent with different bet parameters."""


class SigningError(ArcadeError):
    """The digest handed to the signer is malformed."""


class RegistrationError(ArcadeError):
    """A player registration or rename request is not acceptable."""


class UserNotFoundError(ArcadeError):
    """The wallet is not registered."""


class PersistenceError(ArcadeError):
    """A database write was rolled back."""
