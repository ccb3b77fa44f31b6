"""
Multiplexed (M...) account decoding on top of stellar-sdk.

An M-address is 69 characters and carries an ed25519 account id plus a 64-bit
sub-account id; the SDK verifies version byte and checksum.
"""

from __future__ import annotations

from dataclasses import dataclass

from stellar_sdk import MuxedAccount

from backend_insights.core.exceptions import MuxedAddressError

MUXED_ADDRESS_LENGTH = 69
MUXED_ADDRESS_PREFIX = "M"


@dataclass(frozen=True)
class MuxedAccountInfo:
    muxed_address: str
    base_account: str
    muxed_id: int


def is_muxed_address(address: str | None) -> bool:
    """Structural check only: M prefix and 69 characters. Does not verify the checksum."""
    return (
        isinstance(address, str)
        and len(address) == MUXED_ADDRESS_LENGTH
        and address.startswith(MUXED_ADDRESS_PREFIX)
    )


def parse_muxed_address(address: str) -> MuxedAccountInfo:
    """
    Decode an M... address into its base account and sub-account id.

    Raises:
        MuxedAddressError: wrong shape, bad encoding, version byte or checksum.
    """
    if not is_muxed_address(address):
        raise MuxedAddressError(f"not a multiplexed address: {address!r}")
    try:
        account = MuxedAccount.from_account(address)
    except (ValueError, TypeError) as error:
        raise MuxedAddressError(f"invalid multiplexed address {address!r}: {error}") from error
    if account.account_muxed_id is None:
        raise MuxedAddressError(f"address {address!r} carries no sub-account id")
    return MuxedAccountInfo(
        muxed_address=address,
        base_account=account.account_id,
        muxed_id=account.account_muxed_id,
    )


def decode_muxed_address(address: str) -> MuxedAccountInfo | None:
    """Non-raising form of parse_muxed_address: None when the address does not decode."""
    try:
        return parse_muxed_address(address)
    except MuxedAddressError:
        return None
