"""Minimal contract ABIs used by the metric fetchers."""

ERC20_ABI = [
    {"inputs": [], "name": "totalSupply", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "account", "type": "address"}], "name": "balanceOf", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "string"}], "stateMutability": "view", "type": "function"}
]

JOE_TOKEN_ABI = ERC20_ABI + [
    {"inputs": [], "name": "maxSupply", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"}
]

JOE_PAIR_ABI = ERC20_ABI + [
    {"inputs": [], "name": "token0", "outputs": [{"name": "", "type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "token1", "outputs": [{"name": "", "type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "getReserves", "outputs": [{"name": "_reserve0", "type": "uint112"}, {"name": "_reserve1", "type": "uint112"}, {"name": "_blockTimestampLast", "type": "uint32"}], "stateMutability": "view", "type": "function"}
]

JOE_FACTORY_ABI = [
    {"inputs": [], "name": "feeTo", "outputs": [{"name": "", "type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "tokenA", "type": "address"}, {"name": "tokenB", "type": "address"}], "name": "getPair", "outputs": [{"name": "pair", "type": "address"}], "stateMutability": "view", "type": "function"}
]

MASTERCHEF_V2_ABI = [
    {"inputs": [], "name": "poolLength", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "", "type": "uint256"}], "name": "poolInfo", "outputs": [{"name": "lpToken", "type": "address"}, {"name": "allocPoint", "type": "uint256"}, {"name": "lastRewardTimestamp", "type": "uint256"}, {"name": "accJoePerShare", "type": "uint256"}, {"name": "rewarder", "type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "totalAllocPoint", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "joePerSec", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"}
]

MASTERCHEF_V3_ABI = [
    {"inputs": [], "name": "poolLength", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "", "type": "uint256"}], "name": "poolInfo", "outputs": [{"name": "lpToken", "type": "address"}, {"name": "accJoePerShare", "type": "uint256"}, {"name": "lastRewardTimestamp", "type": "uint256"}, {"name": "allocPoint", "type": "uint256"}, {"name": "rewarder", "type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "totalAllocPoint", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "joePerSec", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"}
]

# Position of each poolInfo field, per MasterChef version
POOL_INFO_FIELDS = {
    "farm_v2": {"lp_token": 0, "alloc_point": 1, "rewarder": 4},
    "farm_v3": {"lp_token": 0, "alloc_point": 3, "rewarder": 4},
}

REWARDER_ABI = [
    {"inputs": [], "name": "rewardToken", "outputs": [{"name": "", "type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "tokenPerSec", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"}
]

JOETROLLER_ABI = [
    {"inputs": [], "name": "getAllMarkets", "outputs": [{"name": "", "type": "address[]"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "oracle", "outputs": [{"name": "", "type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "rewardDistributor", "outputs": [{"name": "", "type": "address"}], "stateMutability": "view", "type": "function"}
]

JTOKEN_ABI = ERC20_ABI + [
    {"inputs": [], "name": "underlying", "outputs": [{"name": "", "type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "totalBorrows", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "exchangeRateStored", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "supplyRatePerSecond", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "borrowRatePerSecond", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"}
]

LENDING_ORACLE_ABI = [
    {"inputs": [{"name": "jToken", "type": "address"}], "name": "getUnderlyingPrice", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"}
]

REWARD_DISTRIBUTOR_ABI = [
    {"inputs": [{"name": "", "type": "uint8"}, {"name": "", "type": "address"}], "name": "rewardSupplySpeeds", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "", "type": "uint8"}, {"name": "", "type": "address"}], "name": "rewardBorrowSpeeds", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"}
]

# Event ABIs, posted to the event log API for decoding
SWAP_EVENT_ABI = {
    "anonymous": False,
    "inputs": [
        {"indexed": True, "internalType": "address", "name": "sender", "type": "address"},
        {"indexed": False, "internalType": "uint256", "name": "amount0In", "type": "uint256"},
        {"indexed": False, "internalType": "uint256", "name": "amount1In", "type": "uint256"},
        {"indexed": False, "internalType": "uint256", "name": "amount0Out", "type": "uint256"},
        {"indexed": False, "internalType": "uint256", "name": "amount1Out", "type": "uint256"},
        {"indexed": True, "internalType": "address", "name": "to", "type": "address"}
    ],
    "name": "Swap",
    "type": "event"
}

LOG_CONVERT_EVENT_ABI = {
    "anonymous": False,
    "inputs": [
        {"indexed": True, "internalType": "address", "name": "server", "type": "address"},
        {"indexed": True, "internalType": "address", "name": "token0", "type": "address"},
        {"indexed": True, "internalType": "address", "name": "token1", "type": "address"},
        {"indexed": False, "internalType": "uint256", "name": "amount0", "type": "uint256"},
        {"indexed": False, "internalType": "uint256", "name": "amount1", "type": "uint256"},
        {"indexed": False, "internalType": "uint256", "name": "amountJOE", "type": "uint256"}
    ],
    "name": "LogConvert",
    "type": "event"
}
