# Cog for ensuring that rolls are written out before maintenance

from cmds import swap_hybrid_command_description
from config import ROLL_FLUSH_INTERVAL
from cogs.base_cog import BaseCog
from discord.ext import commands
from utils import reply


class Maintenance(BaseCog):
    def __init__(self, bot) -> None:
        super().__init__(bot)
        swap_hybrid_command_description(self.forcesave)

    @commands.hybrid_command(
        brief="Write pending rolls to disk",
        description=f"""
    __**forcesave**__
    Immediately write recorded rolls to the current session file.
    Normally, the bot does this automatically every {ROLL_FLUSH_INTERVAL} seconds.
    """,
    )
    async def forcesave(self, ctx: commands.Context):
        errored = self.bot.get_session_log().flush()
        if errored:
            await reply(ctx, "Encountered error while saving. Check the logs.")
            return
        else:
            await reply(ctx, "Succesfully stored rolls.")
