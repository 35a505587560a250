"""Signatures of the bridge, gateway and precompile contracts used by the library."""

from .abi import ContractEvent, ContractFunction, checksum

fn = ContractFunction.parse
event = ContractEvent.parse

# L2 precompiles
ARB_SYS_ADDRESS = "0x0000000000000000000000000000000000000064"
ARB_RETRYABLE_TX_ADDRESS = "0x000000000000000000000000000000000000006E"
NODE_INTERFACE_ADDRESS = "0x00000000000000000000000000000000000000C8"

# Router marker for tokens whose bridging has been switched off
DISABLED_GATEWAY = "0x0000000000000000000000000000000000000001"

# L1 contract addresses are shifted by this offset when they appear as L2 senders
ADDRESS_ALIAS_OFFSET = 0x1111000000000000000000000000000000001111


class Inbox:
    CREATE_RETRYABLE_TICKET = fn(
        "createRetryableTicket(address,uint256,uint256,address,address,uint256,uint256,bytes)",
        "uint256",
    )
    CALCULATE_RETRYABLE_SUBMISSION_FEE = fn(
        "calculateRetryableSubmissionFee(uint256,uint256)", "uint256"
    )
    INBOX_MESSAGE_DELIVERED = event(
        "InboxMessageDelivered",
        [("messageNum", "uint256", True), ("data", "bytes", False)],
    )


class Bridge:
    DELAYED_MESSAGE_COUNT = fn("delayedMessageCount()", "uint256")
    MESSAGE_DELIVERED = event(
        "MessageDelivered",
        [
            ("messageIndex", "uint256", True),
            ("beforeInboxAcc", "bytes32", True),
            ("inbox", "address", False),
            ("kind", "uint8", False),
            ("sender", "address", False),
            ("messageDataHash", "bytes32", False),
            ("baseFeeL1", "uint256", False),
            ("timestamp", "uint64", False),
        ],
    )


class SequencerInbox:
    MAX_TIME_VARIATION = fn("maxTimeVariation()", "uint256,uint256,uint256,uint256")
    TOTAL_DELAYED_MESSAGES_READ = fn("totalDelayedMessagesRead()", "uint256")
    FORCE_INCLUSION = fn("forceInclusion(uint256,uint8,uint64[2],uint256,address,bytes32)")


class L1GatewayRouter:
    OUTBOUND_TRANSFER = fn(
        "outboundTransfer(address,address,uint256,uint256,uint256,bytes)", "bytes"
    )
    L1_TOKEN_TO_GATEWAY = fn("l1TokenToGateway(address)", "address")
    GET_GATEWAY = fn("getGateway(address)", "address")
    CALCULATE_L2_TOKEN_ADDRESS = fn("calculateL2TokenAddress(address)", "address")
    SET_GATEWAYS = fn(
        "setGateways(address[],address[],uint256,uint256,uint256)", "uint256"
    )


class L1Gateway:
    GET_OUTBOUND_CALLDATA = fn(
        "getOutboundCalldata(address,address,address,uint256,bytes)", "bytes"
    )
    COUNTERPART_GATEWAY = fn("counterpartGateway()", "address")
    L1_TO_L2_TOKEN = fn("l1ToL2Token(address)", "address")


class L2GatewayRouter:
    OUTBOUND_TRANSFER = fn("outboundTransfer(address,address,uint256,bytes)", "bytes")
    L1_TOKEN_TO_GATEWAY = fn("l1TokenToGateway(address)", "address")
    SET_GATEWAY = fn("setGateway(address[],address[])")


class L2Gateway:
    REGISTER_TOKEN_FROM_L1 = fn("registerTokenFromL1(address[],address[])")
    WITHDRAWAL_INITIATED = event(
        "WithdrawalInitiated",
        [
            ("l1Token", "address", False),
            ("_from", "address", True),
            ("_to", "address", True),
            ("_l2ToL1Id", "uint256", True),
            ("_exitNum", "uint256", False),
            ("_amount", "uint256", False),
        ],
    )


class CustomToken:
    REGISTER_TOKEN_ON_L2 = fn(
        "registerTokenOnL2(address,uint256,uint256,uint256,uint256,uint256,uint256,uint256,address)"
    )


class ERC20:
    BALANCE_OF = fn("balanceOf(address)", "uint256")
    ALLOWANCE = fn("allowance(address,address)", "uint256")
    APPROVE = fn("approve(address,uint256)", "bool")


class ArbSys:
    WITHDRAW_ETH = fn("withdrawEth(address)", "uint256")
    L2_TO_L1_TX = event(
        "L2ToL1Tx",
        [
            ("caller", "address", False),
            ("destination", "address", True),
            ("hash", "uint256", True),
            ("position", "uint256", True),
            ("arbBlockNum", "uint256", False),
            ("ethBlockNum", "uint256", False),
            ("timestamp", "uint256", False),
            ("callvalue", "uint256", False),
            ("data", "bytes", False),
        ],
    )


class ArbRetryableTx:
    REDEEM = fn("redeem(bytes32)", "bytes32")
    GET_TIMEOUT = fn("getTimeout(bytes32)", "uint256")
    GET_LIFETIME = fn("getLifetime()", "uint256")
    KEEPALIVE = fn("keepalive(bytes32)", "uint256")
    CANCEL = fn("cancel(bytes32)")
    GET_BENEFICIARY = fn("getBeneficiary(bytes32)", "address")
    REDEEM_SCHEDULED = event(
        "RedeemScheduled",
        [
            ("ticketId", "bytes32", True),
            ("retryTxHash", "bytes32", True),
            ("sequenceNum", "uint64", True),
            ("donatedGas", "uint64", False),
            ("gasDonor", "address", False),
            ("maxRefund", "uint256", False),
            ("submissionFeeRefund", "uint256", False),
        ],
    )
    LIFETIME_EXTENDED = event(
        "LifetimeExtended",
        [("ticketId", "bytes32", True), ("newTimeout", "uint256", False)],
    )
    TICKET_CREATED = event("TicketCreated", [("ticketId", "bytes32", True)])
    CANCELED = event("Canceled", [("ticketId", "bytes32", True)])


class NodeInterface:
    ESTIMATE_RETRYABLE_TICKET = fn(
        "estimateRetryableTicket(address,uint256,address,uint256,address,address,bytes)"
    )


def apply_l1_to_l2_alias(address: str) -> str:
    """Address a contract on L1 appears as when it sends a message to L2."""
    return checksum("0x%040x" % ((int(address, 16) + ADDRESS_ALIAS_OFFSET) % (1 << 160)))


def undo_l1_to_l2_alias(address: str) -> str:
    return checksum("0x%040x" % ((int(address, 16) - ADDRESS_ALIAS_OFFSET) % (1 << 160)))
