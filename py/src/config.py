# Configuration and constants.

# DISCORD_TOKEN # is expected in the environment
# TEST_GUILD_ID # can be provided in the environment
# SUMMON_PREFIX # can be provided in the environment
# DATA_DIR # can be provided in the environment

DEFAULT_SUMMON_PREFIX = "~!"
MAX_MESSAGE_LENGTH = 1900
MAX_COMMAND_WORKERS = 5
COMMAND_TIMEOUT = 10.0  # in seconds
INVISIBLE_SPACE = "\u200b"
BOT_DESCRIPTION = "spyware is a dice rolling bot that keeps track of every roll."
DEFAULT_DATA_DIR = "data"
ROLLS_SUBDIR = "rolls"
ROLL_FLUSH_INTERVAL = 10.0  # in seconds
MAX_DICE_PER_ROLL = 500
NICE_ROLL = 69
NICE_EMOJIS = ["🇳", "🇮", "🇨", "🇪"]
CTHULHU_DARK_FACES = 6
