"""ABI for the Counter contract (contracts/Counter.sol)."""

COUNTER_ABI = [
    {
        "type": "function",
        "name": "number",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "setNumber",
        "inputs": [{"name": "newNumber", "type": "uint256"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "increment",
        "inputs": [],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "sayHello",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "pure",
    },
    {
        "type": "function",
        "name": "transferToSender",
        "inputs": [{"name": "amount", "type": "uint256"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {"type": "receive", "stateMutability": "payable"},
    {"type": "fallback", "stateMutability": "payable"},
]
