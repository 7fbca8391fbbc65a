# Base class for bot cogs
import logging

from client import SpyClient
from discord.ext import commands

log = logging.getLogger(__name__)


class BaseCog(commands.Cog):
    def __init__(self, bot: SpyClient) -> None:
        self.bot = bot
