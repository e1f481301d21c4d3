"""
oluolavotes Client Constants

This module consolidates the global constants and environment configuration
used throughout the client. Values listed in the *_DEFAULTS tables can be
overridden from a `.env` file in the working directory.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_FILE':                        'logs/oluolavotes.log',
    'LOG_FILE_OUTPUT':                 'True',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_INCLUDE_CALL_ARGUMENTS':      'True',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5
LOG_MAX_ARGUMENT_LENGTH = 160  # Hex arguments longer than this are truncated in logs


# ==================================================================================
# DEPLOYMENT
# ==================================================================================
# The governance suite lives under a single deployer on mainnet.
DEPLOYER_ADDRESS = 'SP221GWG1PPN83A1TA81DGDWG0V1E21QMKZTGXJ3B'
GOVERNANCE_CONTRACT_NAME = 'oluolavotes'

CONTRACT_NAMES = {
    'OLUOLAVOTES':        'oluolavotes',
    'VOTING_TOKEN':       'voting-token',
    'ACCESS_CONTROL':     'access-control',
    'PROPOSAL_EXECUTION': 'proposal-execution',
    'VOTE_DELEGATION':    'vote-delegation',
    'VOTING_STRATEGY':    'voting-strategy',
    'VOTING_ANALYTICS':   'voting-analytics',
}

DEFAULT_NETWORK = 'mainnet'
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds


# ==================================================================================
# CONTRACT FUNCTIONS
# ==================================================================================
FN_GET_PROPOSAL_COUNT = 'get-proposal-count'
FN_GET_PROPOSAL = 'get-proposal'
FN_GET_VOTING_RESULTS = 'get-voting-results'
FN_IS_VOTING_ACTIVE = 'is-voting-active'
FN_GET_VOTE = 'get-vote'
FN_CREATE_PROPOSAL = 'create-proposal'
FN_VOTE = 'vote'
FN_END_VOTING = 'end-voting'


# ==================================================================================
# READ-MODEL SYNCHRONISATION
# ==================================================================================
DEFAULT_FETCH_CONCURRENCY = 1  # 1 = one proposal at a time
DEFAULT_FETCH_RETRIES = 2      # Extra attempts per id under the "retry" policy
DEFAULT_FAILURE_POLICY = 'omit'


# ==================================================================================
# WALLET
# ==================================================================================
APP_NAME = 'Decentralized Voting System'
APP_ICON = './logo.png'
DEFAULT_WALLET_URL = 'http://127.0.0.1:8999'
DEFAULT_SESSION_FILE = '~/.oluolavotes/session.json'


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Only known literals are handed to ast.literal_eval.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
