# Cog for card drawing commands.
import logging
import random
import typing

import cards
from cmds import swap_hybrid_command_description
from cogs.base_cog import BaseCog
from discord.ext import commands
from utils import *

log = logging.getLogger(__name__)


class DrawOutput(typing.NamedTuple):
    text: str
    card: cards.Card


def _draw(author_name: str, rng=random) -> DrawOutput:
    card = cards.draw_card(rng)
    return DrawOutput(f"{escape(author_name)}\n> {card}", card)


class Cards(BaseCog):
    def __init__(self, bot) -> None:
        super().__init__(bot)
        swap_hybrid_command_description(self.draw)

    @commands.hybrid_command(
        aliases=["card", "carte", "pioche"],
        brief="Draw a playing card",
        description=f"""
    __**draw**__
    Draws a random card from a 54-card deck (52 cards and two jokers).
    Every draw uses a full deck, so the same card can come up twice in a row.
    `{get_summon_prefix()}draw`
    """,
    )
    async def draw(self, ctx: commands.Context):
        output = _draw(ctx.author.name)
        log.info(f"{ctx.author} drew {output.card.two_chars()}")
        await reply(
            ctx,
            output.text,
            embed=image_embed(str(output.card), output.card.image_url()),
        )

    @draw.error
    async def draw_error(self, ctx: commands.Context, error):
        if ignorable_check_failure(error):
            return
        await reply(ctx, f"{error}")
