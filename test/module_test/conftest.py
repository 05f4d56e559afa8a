"""
Shared configuration and fixtures for module integration tests.

WARNING: These tests talk to a real node and the transaction tests spend real
(testnet) tokens!

Environment Variables:
    NEAR_RPC_URL: RPC endpoint URL (required)
    NEAR_ACCOUNT_ID: Account owning the key (required for transactions)
    NEAR_PRIVATE_KEY: ed25519:<base58> secret key (required for transactions)
    NEAR_TEST_CONTRACT: Counter-style contract with get_num / increment (optional)
"""

import os
import sys
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

# Load .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env_or_fail(key: str) -> str:
    """Get required environment variable or raise error"""
    value = os.getenv(key)
    if not value:
        raise EnvironmentError(
            f"Missing required environment variable: {key}\n"
            f"Please set {key} in your .env file or environment."
        )
    return value


def get_rpc_url() -> str:
    """Get NEAR RPC URL from environment"""
    return get_env_or_fail("NEAR_RPC_URL")


def get_signer():
    """Create Signer from NEAR_PRIVATE_KEY and NEAR_ACCOUNT_ID"""
    from near_client import Signer

    return Signer.from_secret_str(
        get_env_or_fail("NEAR_PRIVATE_KEY"),
        get_env_or_fail("NEAR_ACCOUNT_ID"),
    )


def skip_if_no_config(need_signer: bool = False):
    """Check if required config is available, return skip message if not"""
    try:
        get_rpc_url()
        if need_signer:
            get_signer()
        return None
    except EnvironmentError as e:
        return str(e)


# Pytest fixtures
@pytest.fixture(scope="module")
def read_client():
    """NearClient without a signer"""
    skip_msg = skip_if_no_config()
    if skip_msg:
        pytest.skip(skip_msg)

    from near_client import NearClient

    client = NearClient(rpc_url=get_rpc_url())
    yield client
    client.close()


@pytest.fixture(scope="module")
def client():
    """NearClient with the configured signer"""
    skip_msg = skip_if_no_config(need_signer=True)
    if skip_msg:
        pytest.skip(skip_msg)

    from near_client import NearClient

    client = NearClient(rpc_url=get_rpc_url(), signer=get_signer())
    yield client
    client.close()
