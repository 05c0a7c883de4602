"""
Steam ID parsing and conversion

A 64-bit Steam ID packs four fields, most significant first:

    bits 56-63  universe     (8 bits)
    bits 52-55  account type (4 bits)
    bits 32-51  instance     (20 bits)
    bits  0-31  account id   (32 bits)

Discord hands out Steam connection ids that do not always carry the
desktop instance, so they are re-packed before talking to the community site.
"""

import re
from enum import IntEnum
from typing import Union


class Universe(IntEnum):
    INVALID = 0
    PUBLIC = 1
    BETA = 2
    INTERNAL = 3
    DEV = 4


class AccountType(IntEnum):
    INVALID = 0
    INDIVIDUAL = 1
    MULTISEAT = 2
    GAMESERVER = 3
    ANON_GAMESERVER = 4
    PENDING = 5
    CONTENT_SERVER = 6
    CLAN = 7
    CHAT = 8
    P2P_SUPER_SEEDER = 9
    ANON_USER = 10


class Instance(IntEnum):
    ALL = 0
    DESKTOP = 1
    CONSOLE = 2
    WEB = 4


ACCOUNT_ID_MASK = 0xFFFFFFFF
INSTANCE_MASK = 0x000FFFFF

# Chat instance flags (top of the 20-bit instance field)
CHAT_CLAN_FLAG = (INSTANCE_MASK + 1) >> 1
CHAT_LOBBY_FLAG = (INSTANCE_MASK + 1) >> 2

TYPE_LETTERS = {
    AccountType.INVALID: "I",
    AccountType.INDIVIDUAL: "U",
    AccountType.MULTISEAT: "M",
    AccountType.GAMESERVER: "G",
    AccountType.ANON_GAMESERVER: "A",
    AccountType.PENDING: "P",
    AccountType.CONTENT_SERVER: "C",
    AccountType.CLAN: "g",
    AccountType.CHAT: "T",
    AccountType.ANON_USER: "a",
}

STEAM2_RE = re.compile(r"^STEAM_([0-5]):([0-1]):([0-9]+)$")
STEAM3_RE = re.compile(r"^\[([a-zA-Z]):([0-5]):([0-9]+)(?::([0-9]+))?\]$")


class SteamID:
    """
    A decoded Steam ID.

    Use :meth:`parse` to build one from any of the common textual forms.
    """

    def __init__(
        self,
        universe: int = Universe.PUBLIC,
        type: int = AccountType.INDIVIDUAL,
        instance: int = Instance.DESKTOP,
        account_id: int = 0,
    ):
        if not 0 <= universe <= 0xFF:
            raise ValueError(f"Universe out of range: {universe}")
        if not 0 <= type <= 0xF:
            raise ValueError(f"Account type out of range: {type}")
        if not 0 <= instance <= INSTANCE_MASK:
            raise ValueError(f"Instance out of range: {instance}")
        if not 0 <= account_id <= ACCOUNT_ID_MASK:
            raise ValueError(f"Account id out of range: {account_id}")

        self.universe = universe
        self.type = type
        self.instance = instance
        self.account_id = account_id

    @classmethod
    def from_steam64(cls, value: Union[int, str]) -> "SteamID":
        """
        Unpack a 64-bit Steam ID.

        :param value: The Steam ID as an integer or a decimal string
        :return: SteamID
        """
        value = int(value)
        if not 0 <= value < 1 << 64:
            raise ValueError(f"Not a 64-bit Steam ID: {value}")

        return cls(
            universe=value >> 56,
            type=(value >> 52) & 0xF,
            instance=(value >> 32) & INSTANCE_MASK,
            account_id=value & ACCOUNT_ID_MASK,
        )

    @classmethod
    def parse(cls, value: Union[int, str]) -> "SteamID":
        """
        Parse a Steam ID given as 64-bit decimal, Steam2 or Steam3 text.

        :param value: e.g. ``76561197960287930``, ``STEAM_0:0:11101`` or ``[U:1:22202]``
        :return: SteamID
        :raises ValueError: If the value is not a recognisable Steam ID
        """
        if isinstance(value, int):
            return cls.from_steam64(value)

        text = str(value).strip()

        if text.isdigit():
            return cls.from_steam64(text)

        match = STEAM2_RE.match(text)
        if match:
            universe, low_bit, high_bits = (int(group) for group in match.groups())
            return cls(
                # STEAM_0 predates the universe field and means public
                universe=universe or Universe.PUBLIC,
                type=AccountType.INDIVIDUAL,
                instance=Instance.DESKTOP,
                account_id=high_bits * 2 + low_bit,
            )

        match = STEAM3_RE.match(text)
        if match:
            letter, universe, account_id, instance = match.groups()
            return cls(
                universe=int(universe),
                type=cls._type_from_letter(letter),
                instance=cls._instance_from_letter(letter, instance),
                account_id=int(account_id),
            )

        raise ValueError(f"Unknown Steam ID format: {value!r}")

    @staticmethod
    def _type_from_letter(letter: str) -> int:
        if letter in ("c", "L"):
            return AccountType.CHAT
        for account_type, type_letter in TYPE_LETTERS.items():
            if type_letter == letter:
                return account_type
        raise ValueError(f"Unknown Steam3 account type letter: {letter!r}")

    @staticmethod
    def _instance_from_letter(letter: str, instance) -> int:
        if instance is not None:
            return int(instance)
        if letter == "U":
            return Instance.DESKTOP
        if letter == "c":
            return CHAT_CLAN_FLAG
        if letter == "L":
            return CHAT_LOBBY_FLAG
        return Instance.ALL

    def steam64(self) -> int:
        """Pack the fields back into a 64-bit integer."""
        return (
            (self.universe << 56)
            | (self.type << 52)
            | (self.instance << 32)
            | self.account_id
        )

    def with_instance(self, instance: int) -> "SteamID":
        return SteamID(
            universe=self.universe,
            type=self.type,
            instance=instance,
            account_id=self.account_id,
        )

    def as_steam2(self) -> str:
        # Legacy format always writes universe 0 for the public universe
        universe = 0 if self.universe == Universe.PUBLIC else self.universe
        return f"STEAM_{universe}:{self.account_id & 1}:{self.account_id >> 1}"

    def as_steam3(self) -> str:
        letter = TYPE_LETTERS.get(self.type, "i")
        if self.type == AccountType.CHAT:
            if self.instance & CHAT_CLAN_FLAG:
                letter = "c"
            elif self.instance & CHAT_LOBBY_FLAG:
                letter = "L"

        rendered = f"[{letter}:{self.universe}:{self.account_id}"
        if self.type in (AccountType.ANON_GAMESERVER, AccountType.MULTISEAT):
            rendered += f":{self.instance}"
        return rendered + "]"

    def __eq__(self, other) -> bool:
        if not isinstance(other, SteamID):
            return NotImplemented
        return self.steam64() == other.steam64()

    def __hash__(self) -> int:
        return hash(self.steam64())

    def __str__(self) -> str:
        return str(self.steam64())

    def __repr__(self) -> str:
        return (
            f"SteamID(universe={self.universe}, type={self.type}, "
            f"instance={self.instance}, account_id={self.account_id})"
        )


def normalize_connection_id(raw_id: Union[int, str]) -> str:
    """
    Turn the id of a Discord Steam connection into a desktop-instance Steam64 ID.

    :param raw_id: The ``id`` field of the Discord connection object
    :return: The 64-bit Steam ID as a decimal string
    :raises ValueError: If the id cannot be parsed
    """
    return str(SteamID.parse(raw_id).with_instance(Instance.DESKTOP).steam64())
