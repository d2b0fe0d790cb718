"""
Metrics service configuration.

RPC / API endpoints, contract addresses, cache lifetimes and protocol constants.
"""

import os

# Chain access
AVAX_RPC = os.getenv("AVAX_RPC", "https://api.avax.network/ext/bc/C/rpc")
AVAX_CHAIN_ID = 43114
RPC_TIMEOUT_SECONDS = int(os.getenv("RPC_TIMEOUT_SECONDS", 10))

# Event log API (hourly swap volume and JoeMaker conversions)
MORALIS_ENDPOINT = os.getenv("MORALIS_ENDPOINT", "https://deep-index.moralis.io/api/v2")
MORALIS_API_KEY = os.getenv("MORALIS_API_KEY")
MORALIS_CHAIN = "avalanche"
EVENTS_TIMEOUT_SECONDS = int(os.getenv("EVENTS_TIMEOUT_SECONDS", 30))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Avalanche C-Chain deployments
CONTRACTS = {
    "joe": "0x6e84a6216eA6dACC71eE8E6b0a5B7322EEbC0fDd",
    "xjoe": "0x57319d41F71E81F3c65F2a47CA4e001EbAFd4F33",
    "masterchef_v2": "0xd6a4F121CA35509aF06A0Be99093d08462f53052",
    "masterchef_v3": "0x188bED1968b795d5c9022F6a0bb5931Ac4c18F00",
    "joe_factory": "0x9Ad6C38BE94206cA50bb0d90783181662f0Cfa10",
    "joetroller": "0xdc13687554205E5b89Ac783db14bb5bba4A1eDaC",
    "wavax": "0xB31f66AA3C1e785363F0875A1B74E27b85FD66c7",
    "usdc": "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
    "burn": "0x000000000000000000000000000000000000dEaD",
}

# Lending markets whose underlying is native AVAX (no underlying() method)
NATIVE_LENDING_MARKETS = {
    "0xc22f01ddc8010ee05574028528614634684ec29e",  # jAVAX
}

# Wallets excluded from circulating JOE supply (comma separated)
TEAM_TREASURY_WALLETS = [
    wallet.strip() for wallet in os.getenv("TEAM_TREASURY_WALLETS", "").split(",") if wallet.strip()
]

# Cache lifetime per metric kind (in seconds)
TTL_CONFIG = {
    "joe_supply": 10,           # JOE total / circulating supply
    "max_supply": 86400,        # immutable in practice
    "lending_market": 10,       # per-market supply / borrow in USD
    "lending_totals": 10,       # Banker Joe totals
    "lending_rate": 60,         # supply / borrow APY
    "lending_rewards": 60,      # supply / borrow rewards APR
    "price": 10,
    "derived_price": 10,
    "tvl": 60,
    "farm_apr": 60,
    "farm_liquidity": 60,
    "bonus_apr": 60,
    "pool_weight": 60,
    "stake_apr": 3600,
    "static": 86400,            # oracle / distributor / JoeMaker addresses, pair tokens
}

# Trailing 24h aggregates: 24 hourly slots
WINDOW_CONFIG = {
    "slots": 24,
    "slot_seconds": 3600,
}

# Share of each swap paid to liquidity providers (0.25% of the 0.3% fee)
FEES_PERCENT = "0.0025"

# V2 farms double the denominator of the reward APR, V3 farms do not
FARM_DENOMINATOR_MULTIPLIER = {
    "farm_v2": 2,
    "farm_v3": 1,
}

# Banker Joe reward types, as indexed by the RewardDistributor
LENDING_REWARD_TYPES = {
    0: "joe",
    1: "wavax",
}
