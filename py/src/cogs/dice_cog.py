# Cog for dice roller commands
import logging
import typing

import dice
from cmds import as_subprocess_command, swap_hybrid_command_description
from cogs.base_cog import BaseCog
from config import CTHULHU_DARK_FACES, MAX_DICE_PER_ROLL, NICE_EMOJIS, NICE_ROLL
from discord.ext import commands
from utils import *

log = logging.getLogger(__name__)


class RollOutput(typing.NamedTuple):
    text: str
    nice: bool = False


def format_roll_result(result: dice.RollResult) -> str:
    out = (
        codeblock(result.formula)
        + f" ⇒ **{result.total}**"
        + f"  |  {escape(result.display)}"
    )
    if len(result.log_errors) > 0:
        out += f"\n(Failed to record {len(result.log_errors)} roll(s) in the session log.)"
    return out


# A lone die showing the magic number.
def is_nice(result: dice.RollResult) -> bool:
    rolled = [
        value for node in dice.walk_dice(result.expression) for value in node.payload
    ]
    return rolled == [NICE_ROLL]


# Runs in a worker process; `session_log` is a proxy to the shared log.
def _roll(formula: str, user_id: int, session_log) -> RollOutput:
    try:
        result = dice.roll(formula, user_id, session_log, max_dice=MAX_DICE_PER_ROLL)
        return RollOutput(format_roll_result(result), is_nice(result))
    except dice.RollError as err:
        log.info(f"Roll error. {err}")
        return RollOutput(f"Roll error.\n{codeblock(err, big=True)}")


def _roll_cthulhu_dark(points: int, user_id: int, session_log) -> RollOutput:
    evaluator = dice.RollEvaluator(user_id, session_log)
    human, insight = dice.roll_cthulhu_dark(points, evaluator, CTHULHU_DARK_FACES)
    lines = []
    if len(human) > 0:
        lines.append("Result(s): " + " / ".join(str(r) for r in human))
    if insight is not None:
        lines.append(f"Insight: {insight}")
    if len(lines) == 0:
        return RollOutput("At least call me for something useful. :rage:")
    return RollOutput("\n".join(lines))


class DiceRoller(BaseCog):
    def __init__(self, bot) -> None:
        super().__init__(bot)
        swap_hybrid_command_description(self.roll)
        swap_hybrid_command_description(self.session)
        swap_hybrid_command_description(self.rcd)

    @commands.hybrid_command(
        aliases=["r"],
        brief="Roll some dice",
        description=f"""
    __**roll**__
    Rolls some dice and does some math.
    See: (https://en.wikipedia.org/wiki/Dice_notation).
    Every die rolled is recorded in the current session.

    __Dice roll__ `d`
        `<N>d<S>` to roll N dice of size S, like `{get_summon_prefix()}roll 5d6`.
    __Arithmetic__ `+ - * / %`
        `/` divides rounding toward zero. `%` is remainder.
        A leading `-` negates, like `{get_summon_prefix()}roll -1d6 * 2`.
    __Parentheses__ `( )` for associativity and order of operations.
        `{get_summon_prefix()}roll 1d3 + (3d4 * 2d20)`
    At most {MAX_DICE_PER_ROLL} dice can be rolled at once.
    """,
    )
    async def roll(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(
            description="The dice roll formula to evaluate"
        ),
    ):
        output: RollOutput = await as_subprocess_command(
            ctx, _roll, formula, ctx.author.id, self.bot.get_session_log()
        )
        sent = await reply(ctx, output.text)
        if output.nice and sent is not None:
            for emoji in NICE_EMOJIS:
                await sent.add_reaction(emoji)

    @commands.hybrid_command(
        brief="Start a new roll session",
        description=f"""
    __**session**__
    Starts a new roll session. Rolls made from now on are kept in a new session file.
    """,
    )
    async def session(self, ctx: commands.Context):
        filename = self.bot.get_session_log().new_session()
        log.info(f"{ctx.author} started roll session {filename}")
        await reply(ctx, f"A new session has begun! Rolls now go to {codeblock(filename)}.")

    @commands.hybrid_command(
        brief="Roll dice for Cthulhu Dark",
        description=f"""
    __**rcd**__
    Rolls dice for the Cthulhu Dark RPG.
    Every 10 points rolls a human die, and any remainder rolls an insight die.
    `{get_summon_prefix()}rcd 10`, `{get_summon_prefix()}rcd 21`
    """,
    )
    async def rcd(
        self,
        ctx: commands.Context,
        points: int = commands.parameter(description="Points to spend on dice"),
    ):
        output: RollOutput = await as_subprocess_command(
            ctx, _roll_cthulhu_dark, points, ctx.author.id, self.bot.get_session_log()
        )
        await reply(ctx, output.text)

    @rcd.error
    @session.error
    @roll.error
    async def roll_error(self, ctx: commands.Context, error):
        if ignorable_check_failure(error):
            return
        await reply(ctx, f"{error}")
