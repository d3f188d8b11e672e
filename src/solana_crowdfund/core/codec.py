"""
Borsh Codec for Crowdfunding Accounts

Byte-exact layouts shared with the on-chain program. All integers are
little-endian, strings are a u32 byte length followed by UTF-8 bytes.

Campaign layout:
    creator         32 bytes
    title           u32 len + utf-8
    description     u32 len + utf-8
    goal_amount     u64
    amount_raised   u64
    donors_count    u32
    created_at      i64
    deadline        i64
    is_active       u8 (0 or 1)
    category        u8 (0..7)
    withdrawn       u8 (0 or 1)

Booleans are strict: any byte other than 0 or 1 is a decode error, matching
how the program's borsh `bool` is read.
"""

from borsh_construct import CStruct, I64, String, U8, U32, U64
from construct import ConstructError
from solders.pubkey import Pubkey

from ..exceptions import DecodeError, ValidationError
from .campaign import Campaign, CampaignCategory, DonorInfo


PUBKEY_LEN = 32

CAMPAIGN_LAYOUT = CStruct(
    "creator" / U8[PUBKEY_LEN],
    "title" / String,
    "description" / String,
    "goal_amount" / U64,
    "amount_raised" / U64,
    "donors_count" / U32,
    "created_at" / I64,
    "deadline" / I64,
    "is_active" / U8,
    "category" / U8,
    "withdrawn" / U8,
)

DONOR_INFO_LAYOUT = CStruct(
    "donor" / U8[PUBKEY_LEN],
    "amount" / U64,
    "donated_at" / I64,
    "campaign_id" / U8[PUBKEY_LEN],
)

# Fixed part of the campaign record: everything except the string bodies
CAMPAIGN_FIXED_SIZE = PUBKEY_LEN + 4 + 4 + 8 + 8 + 4 + 8 + 8 + 1 + 1 + 1
DONOR_INFO_SIZE = PUBKEY_LEN + 8 + 8 + PUBKEY_LEN

# Offset of DonorInfo.campaign_id, used for memcmp filters
DONOR_INFO_CAMPAIGN_OFFSET = PUBKEY_LEN + 8 + 8


def campaign_size(title: str, description: str) -> int:
    """Exact encoded size of a campaign with the given texts."""
    return CAMPAIGN_FIXED_SIZE + len(title.encode("utf-8")) + len(description.encode("utf-8"))


def encode_campaign(campaign: Campaign) -> bytes:
    """
    Serialize a campaign record to its on-chain layout.

    Decoding accepts any deadline the account holds, but a record is only
    written with a deadline after its creation time.
    """
    if campaign.deadline <= campaign.created_at:
        raise ValidationError("Deadline must be after the creation time",
                              field="deadline", value=campaign.deadline)
    return CAMPAIGN_LAYOUT.build({
        "creator": list(bytes(campaign.creator)),
        "title": campaign.title,
        "description": campaign.description,
        "goal_amount": campaign.goal_amount,
        "amount_raised": campaign.amount_raised,
        "donors_count": campaign.donors_count,
        "created_at": campaign.created_at,
        "deadline": campaign.deadline,
        "is_active": int(campaign.is_active),
        "category": int(campaign.category),
        "withdrawn": int(campaign.withdrawn),
    })


def _parse(layout, data: bytes, record: str):
    try:
        return layout.parse(data)
    except ConstructError as e:
        raise DecodeError(f"Truncated or malformed {record} buffer ({len(data)} bytes): {e}") from e
    except UnicodeDecodeError as e:
        raise DecodeError(f"{record} text is not valid UTF-8: {e}") from e


def _flag(name: str, byte: int) -> bool:
    if byte not in (0, 1):
        raise DecodeError(f"Invalid boolean byte for {name}: {byte}", field=name)
    return byte == 1


def decode_campaign(data: bytes) -> Campaign:
    """
    Parse a campaign account buffer.

    Raises DecodeError on truncation, string lengths past the end of the
    buffer, bad UTF-8, non 0/1 booleans, unknown categories and trailing bytes.
    """
    data = bytes(data)
    parsed = _parse(CAMPAIGN_LAYOUT, data, "campaign")

    consumed = campaign_size(parsed.title, parsed.description)
    if consumed != len(data):
        raise DecodeError(f"Unexpected {len(data) - consumed} trailing bytes after campaign record")

    try:
        category = CampaignCategory(parsed.category)
    except ValueError:
        raise DecodeError(f"Unknown campaign category: {parsed.category}", field="category") from None

    try:
        return Campaign(
            creator=Pubkey.from_bytes(bytes(parsed.creator)),
            title=parsed.title,
            description=parsed.description,
            goal_amount=parsed.goal_amount,
            amount_raised=parsed.amount_raised,
            donors_count=parsed.donors_count,
            created_at=parsed.created_at,
            deadline=parsed.deadline,
            is_active=_flag("is_active", parsed.is_active),
            category=category,
            withdrawn=_flag("withdrawn", parsed.withdrawn),
        )
    except ValidationError as e:
        raise DecodeError(f"Campaign field out of range: {e.message}", field=e.field) from e


def encode_donor_info(info: DonorInfo) -> bytes:
    return DONOR_INFO_LAYOUT.build({
        "donor": list(bytes(info.donor)),
        "amount": info.amount,
        "donated_at": info.donated_at,
        "campaign_id": list(bytes(info.campaign_id)),
    })


def decode_donor_info(data: bytes) -> DonorInfo:
    data = bytes(data)
    if len(data) != DONOR_INFO_SIZE:
        raise DecodeError(f"Donor record must be {DONOR_INFO_SIZE} bytes, got {len(data)}")
    parsed = _parse(DONOR_INFO_LAYOUT, data, "donor")
    return DonorInfo(
        donor=Pubkey.from_bytes(bytes(parsed.donor)),
        amount=parsed.amount,
        donated_at=parsed.donated_at,
        campaign_id=Pubkey.from_bytes(bytes(parsed.campaign_id)),
    )
