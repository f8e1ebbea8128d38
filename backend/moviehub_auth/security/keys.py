"""
Signing key material shared by issuers and validators.

A :class:`SigningKeyRing` is built once at startup and never mutated. It holds
the *current* key used for signing plus a small set of *previous* keys that
are still accepted for verification, which is what makes a key rollover
possible without invalidating live access tokens:

1. Add the new key to ``JWT_PREVIOUS_KEYS`` on every verifier and redeploy.
2. Promote it to ``JWT_SECRET_KEY``/``JWT_KEY_ID`` on the issuer.
3. Remove the old key once ``JWT_ACCESS_TOKEN_MINUTES`` have elapsed.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})


@dataclass(frozen=True, slots=True)
class SigningKey:
    """
    One named key.

    :param kid: Key identifier written in the JWT header.
    :type kid: str
    :param secret: Signing material (shared secret or private key PEM).
    :type secret: str
    :param algorithm: JWS algorithm, e.g. ``"HS256"``.
    :type algorithm: str
    :param public_key: Verification material for asymmetric algorithms.
    :type public_key: str | None
    """

    kid: str
    secret: str = field(repr=False)
    algorithm: str = "HS256"
    public_key: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.kid:
            raise ValueError("Signing key requires a non-empty kid.")
        if self.algorithm in HMAC_ALGORITHMS:
            if not self.secret:
                raise ValueError(f"Signing key {self.kid!r} has no secret.")
        elif not self.public_key:
            raise ValueError(f"Algorithm {self.algorithm} needs a public key for verification.")

    @property
    def can_sign(self) -> bool:
        """Asymmetric keys kept only for verification carry no private key."""
        return bool(self.secret)

    @property
    def verification_key(self) -> str:
        """Return the material used to verify signatures."""
        if self.algorithm in HMAC_ALGORITHMS:
            return self.secret
        return self.public_key or ""


@dataclass(frozen=True, slots=True)
class SigningKeyRing:
    """
    Immutable set of keys: one current signer plus accepted previous keys.

    :param current: Key used for new signatures.
    :param previous: Keys still accepted for verification.
    """

    current: SigningKey
    previous: tuple[SigningKey, ...] = ()

    def __post_init__(self) -> None:
        kids = [k.kid for k in self]
        if len(kids) != len(set(kids)):
            raise ValueError("Duplicate kid in signing key ring.")
        if not self.current.can_sign:
            raise ValueError(f"Current key {self.current.kid!r} cannot sign.")

    def __iter__(self) -> Iterator[SigningKey]:
        yield self.current
        yield from self.previous

    def get(self, kid: str | None) -> SigningKey | None:
        """Return the key registered under ``kid``, if any."""
        if kid is None:
            return None
        for key in self:
            if key.kid == kid:
                return key
        return None

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> SigningKeyRing:
        """
        Build a ring from a Flask-style config mapping.

        ``JWT_PREVIOUS_KEYS`` is a comma-separated list of ``kid:material`` pairs.
        For HMAC algorithms the material is the shared secret; otherwise it is
        the public key PEM (``\\n`` escapes allowed), and the key only verifies.

        :raises ValueError: On missing or malformed entries.
        """
        algorithm = str(config.get("JWT_ALGORITHM", "HS256"))
        current = SigningKey(
            kid=str(config.get("JWT_KEY_ID") or "primary"),
            secret=str(config.get("JWT_SECRET_KEY") or ""),
            algorithm=algorithm,
            public_key=_opt_str(config.get("JWT_PUBLIC_KEY")),
        )
        previous: list[SigningKey] = []
        raw = str(config.get("JWT_PREVIOUS_KEYS") or "")
        for entry in (e.strip() for e in raw.split(",")):
            if not entry:
                continue
            kid, sep, material = entry.partition(":")
            kid, material = kid.strip(), material.strip()
            if not sep or not kid or not material:
                raise ValueError("JWT_PREVIOUS_KEYS entries must look like 'kid:secret'.")
            if algorithm in HMAC_ALGORITHMS:
                previous.append(SigningKey(kid=kid, secret=material, algorithm=algorithm))
            else:
                public_key = material.replace("\\n", "\n")
                previous.append(
                    SigningKey(kid=kid, secret="", algorithm=algorithm, public_key=public_key)
                )
        return cls(current=current, previous=tuple(previous))


def _opt_str(value: object) -> str | None:
    return str(value) if value else None
