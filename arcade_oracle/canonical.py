"""Canonical message layouts signed for the settlement contracts.

Each layout is the exact tuple of Solidity types the contract passes to
`abi.encodePacked` before hashing. Field order and widths are a wire
contract with deployed code: any change needs a new layout version and a
new contract.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from eth_abi.exceptions import EncodingError
from eth_abi.packed import encode_packed
from eth_utils import is_address, to_checksum_address

from arcade_oracle.errors import CanonicalEncodingError

UINT_BITS = {"uint8": 8, "uint256": 256}


@dataclass(frozen=True)
class CanonicalLayout:
    game: str
    version: int
    fields: Tuple[Tuple[str, str], ...]

    @property
    def types(self) -> list:
        return [abi_type for _, abi_type in self.fields]


DICE_LAYOUT = CanonicalLayout(
    game="dice",
    version=1,
    fields=(
        ("player", "address"),
        ("nonce", "uint256"),
        ("target", "uint8"),
        ("bet_under", "bool"),
        ("result", "uint8"),
    ),
)

TOWER_LAYOUT = CanonicalLayout(
    game="tower",
    version=1,
    fields=(
        ("player", "address"),
        ("nonce", "uint256"),
        ("row", "uint8"),
        ("death_tile", "uint8"),
    ),
)

CRASH_LAYOUT = CanonicalLayout(
    game="crash",
    version=1,
    fields=(
        ("player", "address"),
        ("nonce", "uint256"),
        ("crash_point", "uint256"),
    ),
)


def normalize_address(player: str) -> str:
    """Return the EIP-55 checksum form of a 20-byte hex address."""
    if not isinstance(player, str) or not is_address(player):
        raise CanonicalEncodingError(f"not a 20-byte address: {player!r}")
    return to_checksum_address(player)


def _check_value(name: str, abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return normalize_address(value)
    if abi_type == "bool":
        if not isinstance(value, bool):
            raise CanonicalEncodingError(f"{name} must be a bool")
        return value
    bits = UINT_BITS[abi_type]
    if isinstance(value, bool) or not isinstance(value, int):
        raise CanonicalEncodingError(f"{name} must be an integer")
    if value < 0 or value >= 2**bits:
        raise CanonicalEncodingError(f"{name}={value} does not fit {abi_type}")
    return value


def encode(layout: CanonicalLayout, values: Dict[str, Any]) -> bytes:
    """Pack `values` in layout order.

    Args:
        layout (CanonicalLayout): per-game field layout
        values (Dict[str, Any]): one value per layout field

    Raises:
        CanonicalEncodingError: a field is missing or does not fit its type

    Returns:
        bytes: tight-packed encoding (address 20 bytes, uints big-endian, bool 1 byte)
    """
    missing = [name for name, _ in layout.fields if name not in values]
    if missing:
        raise CanonicalEncodingError(f"{layout.game} message is missing {missing}")
    packed_values = [
        _check_value(name, abi_type, values[name]) for name, abi_type in layout.fields
    ]
    try:
        return encode_packed(layout.types, packed_values)
    except EncodingError as e:
        raise CanonicalEncodingError(str(e)) from e


def dice_message(player: str, nonce: int, target: int, bet_under: bool, result: int) -> bytes:
    return encode(
        DICE_LAYOUT,
        {"player": player, "nonce": nonce, "target": target, "bet_under": bet_under, "result": result},
    )


def tower_message(player: str, nonce: int, row: int, death_tile: int) -> bytes:
    return encode(
        TOWER_LAYOUT,
        {"player": player, "nonce": nonce, "row": row, "death_tile": death_tile},
    )


def crash_message(player: str, nonce: int, crash_point: int) -> bytes:
    return encode(CRASH_LAYOUT, {"player": player, "nonce": nonce, "crash_point": crash_point})
