"""
Property-based tests for retryable ticket encoding and fee arithmetic.

This module uses Hypothesis to check the codec and the fee margins over a
wide range of generated inputs.
"""

import logging

logger = logging.getLogger(__name__)

from hypothesis import given, settings
from hypothesis import strategies as st

from rollupbridge.chain import checksum
from rollupbridge.message import (
    RetryableMessageParams,
    calculate_submit_retryable_id,
    encode_submit_retryable_data,
    parse_submit_retryable_data,
    percent_increase,
)

uint256 = st.integers(min_value=0, max_value=2**256 - 1)
addresses = st.binary(min_size=20, max_size=20).map(checksum)

message_params = st.builds(
    RetryableMessageParams,
    dest_address=addresses,
    l2_call_value=uint256,
    l1_value=uint256,
    max_submission_fee=uint256,
    excess_fee_refund_address=addresses,
    call_value_refund_address=addresses,
    gas_limit=uint256,
    max_fee_per_gas=uint256,
    data=st.binary(max_size=256),
)


class TestPercentIncreaseProperties:
    """Fee margin arithmetic."""

    @given(num=st.integers(min_value=0, max_value=2**200), increase=st.integers(0, 1000))
    def test_never_decreases(self, num, increase):
        assert percent_increase(num, increase) >= num

    @given(num=st.integers(min_value=0, max_value=2**200))
    def test_zero_percent_is_identity(self, num):
        assert percent_increase(num, 0) == num

    @given(num=st.integers(min_value=0, max_value=2**200), increase=st.integers(0, 1000))
    def test_bounded_by_exact_product(self, num, increase):
        """Integer division rounds the margin down, never up."""
        result = percent_increase(num, increase)
        assert 100 * result <= num * (100 + increase)
        assert 100 * result > num * (100 + increase) - 100


class TestMessageDataProperties:
    """Inbox message data layout."""

    @given(params=message_params)
    @settings(max_examples=50)
    def test_parse_inverts_encode(self, params):
        assert parse_submit_retryable_data(encode_submit_retryable_data(params)) == params

    @given(params=message_params)
    @settings(max_examples=50)
    def test_length_is_head_plus_calldata(self, params):
        assert len(encode_submit_retryable_data(params)) == 9 * 32 + len(params.data)


class TestTicketIdProperties:
    """Ticket id derivation."""

    @given(
        chain_id=st.integers(min_value=1, max_value=2**64),
        sender=addresses,
        first=st.integers(min_value=0, max_value=2**64),
        second=st.integers(min_value=0, max_value=2**64),
        params=message_params,
    )
    @settings(max_examples=50)
    def test_message_number_distinguishes_tickets(self, chain_id, sender, first, second, params):
        def ticket_id(message_number):
            return calculate_submit_retryable_id(
                chain_id,
                sender,
                message_number,
                10**9,
                params.dest_address,
                params.l2_call_value,
                params.l1_value,
                params.max_submission_fee,
                params.excess_fee_refund_address,
                params.call_value_refund_address,
                params.gas_limit,
                params.max_fee_per_gas,
                params.data,
            )

        first_id = ticket_id(first)
        assert first_id == ticket_id(first)
        assert first_id.startswith("0x") and len(first_id) == 66
        assert first_id == first_id.lower()
        if first != second:
            assert first_id != ticket_id(second)
