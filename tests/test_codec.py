import struct

import pytest
from solders.pubkey import Pubkey

from solana_crowdfund.core.campaign import CampaignCategory, DonorInfo
from solana_crowdfund.core.codec import (
    CAMPAIGN_FIXED_SIZE,
    DONOR_INFO_SIZE,
    campaign_size,
    decode_campaign,
    decode_donor_info,
    encode_campaign,
    encode_donor_info,
)
from solana_crowdfund.exceptions import DecodeError, ValidationError

from conftest import T0


def expected_layout(c) -> bytes:
    title = c.title.encode("utf-8")
    description = c.description.encode("utf-8")
    return b"".join([
        bytes(c.creator),
        struct.pack("<I", len(title)), title,
        struct.pack("<I", len(description)), description,
        struct.pack("<QQIqq", c.goal_amount, c.amount_raised, c.donors_count, c.created_at, c.deadline),
        bytes([int(c.is_active), int(c.category), int(c.withdrawn)]),
    ])


def test_encode_matches_byte_layout(sample_campaign):
    assert encode_campaign(sample_campaign) == expected_layout(sample_campaign)


def test_end_to_end_scenario_decodes_every_field(sample_campaign):
    decoded = decode_campaign(encode_campaign(sample_campaign))

    assert decoded == sample_campaign
    assert decoded.creator == sample_campaign.creator
    assert decoded.title == "Test"
    assert decoded.description == "Desc"
    assert decoded.goal_amount == 10_000_000_000
    assert decoded.amount_raised == 0
    assert decoded.donors_count == 0
    assert decoded.created_at == T0
    assert decoded.deadline == T0 + 2_592_000
    assert decoded.is_active is True
    assert decoded.category is CampaignCategory.TECHNOLOGY
    assert decoded.withdrawn is False


def test_round_trip_with_extreme_values(sample_campaign):
    from dataclasses import replace

    campaign = replace(
        sample_campaign,
        title="Café ☕ " * 10,
        description="",
        goal_amount=2**64 - 1,
        amount_raised=2**64 - 1,
        donors_count=2**32 - 1,
        created_at=-2**63,
        deadline=2**63 - 1,
        is_active=False,
        category=CampaignCategory.OTHER,
        withdrawn=True,
    )
    encoded = encode_campaign(campaign)
    assert len(encoded) == campaign_size(campaign.title, campaign.description)
    assert decode_campaign(encoded) == campaign


def test_campaign_size_counts_utf8_bytes():
    assert campaign_size("", "") == CAMPAIGN_FIXED_SIZE == 79
    assert campaign_size("é", "ab") == 79 + 2 + 2


def test_every_proper_prefix_fails(sample_campaign):
    encoded = encode_campaign(sample_campaign)
    for n in range(len(encoded)):
        with pytest.raises(DecodeError):
            decode_campaign(encoded[:n])


def test_string_length_past_end_of_buffer():
    data = bytes(32) + struct.pack("<I", 1000) + b"abc"
    with pytest.raises(DecodeError):
        decode_campaign(data)


def test_huge_declared_length_does_not_overread(sample_campaign):
    encoded = bytearray(encode_campaign(sample_campaign))
    encoded[32:36] = struct.pack("<I", 0xFFFFFFFF)
    with pytest.raises(DecodeError):
        decode_campaign(bytes(encoded))


@pytest.mark.parametrize("offset_from_end, value, field", [
    (3, 2, "is_active"),
    (1, 255, "withdrawn"),
])
def test_boolean_bytes_must_be_zero_or_one(sample_campaign, offset_from_end, value, field):
    encoded = bytearray(encode_campaign(sample_campaign))
    encoded[-offset_from_end] = value
    with pytest.raises(DecodeError) as excinfo:
        decode_campaign(bytes(encoded))
    assert excinfo.value.field == field


def test_out_of_range_category_is_a_decode_error(sample_campaign):
    encoded = bytearray(encode_campaign(sample_campaign))
    encoded[-2] = 8
    with pytest.raises(DecodeError) as excinfo:
        decode_campaign(bytes(encoded))
    assert excinfo.value.field == "category"


def test_trailing_bytes_are_rejected(sample_campaign):
    with pytest.raises(DecodeError):
        decode_campaign(encode_campaign(sample_campaign) + b"\x00")


def test_invalid_utf8_title(sample_campaign):
    encoded = bytearray(encode_campaign(sample_campaign))
    encoded[36:40] = b"\xff\xfe\xfd\xfc"
    with pytest.raises(DecodeError):
        decode_campaign(bytes(encoded))


def test_donor_info_layout_and_round_trip():
    info = DonorInfo(donor=Pubkey.new_unique(), amount=250_000_000, donated_at=T0,
                     campaign_id=Pubkey.new_unique())
    encoded = encode_donor_info(info)

    assert len(encoded) == DONOR_INFO_SIZE == 80
    assert encoded[32:40] == struct.pack("<Q", 250_000_000)
    assert encoded[48:] == bytes(info.campaign_id)
    assert decode_donor_info(encoded) == info


def test_donor_info_wrong_size():
    with pytest.raises(DecodeError):
        decode_donor_info(bytes(79))


def test_encode_requires_deadline_after_creation(sample_campaign):
    from dataclasses import replace

    for deadline in (sample_campaign.created_at, sample_campaign.created_at - 1):
        with pytest.raises(ValidationError) as excinfo:
            encode_campaign(replace(sample_campaign, deadline=deadline))
        assert excinfo.value.field == "deadline"


def test_decode_accepts_any_stored_deadline(sample_campaign):
    encoded = bytearray(encode_campaign(sample_campaign))
    # deadline is the i64 just before the three trailing u8 fields
    encoded[-11:-3] = struct.pack("<q", sample_campaign.created_at - 1)
    assert decode_campaign(bytes(encoded)).deadline == sample_campaign.created_at - 1
