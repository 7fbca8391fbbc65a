# A bot client that rolls dice and keeps a log of every roll.
import logging
import os
from multiprocessing.managers import SyncManager

import cmds
import discord
from config import *
from discord.ext import commands, tasks
from sessions import SessionLog
from utils import *

log = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


class DataManager(SyncManager):
    def __init__(self):
        SyncManager.__init__(self)


# Bot client holding a pool of workers for running commands and a shared data manager.
# The roll session log lives in the manager process, so that rolls evaluated
# in worker processes all record into the same session.
class SpyClient(commands.Bot):
    managed_types: dict = {"SessionLog": SessionLog}

    def __init__(self, misc_commands, misc_cogs):
        commands.Bot.__init__(
            self,
            command_prefix=commands.when_mentioned_or(get_summon_prefix()),
            strip_after_prefix=True,
            intents=get_intents(),
            help_command=commands.DefaultHelpCommand(no_category="Miscellaneous"),
        )
        self.description = BOT_DESCRIPTION

        self.misc_commands = misc_commands
        self.misc_cogs = misc_cogs

        self.executor = cmds.PebbleExecutor(MAX_COMMAND_WORKERS, COMMAND_TIMEOUT)
        self.sync_manager = None
        self.session_log = None

    def get_sync_manager(self) -> DataManager:
        if self.sync_manager is None:
            raise RuntimeError("Missing sync manager for SpyClient bot.")
        return self.sync_manager

    def get_executor(self) -> cmds.PebbleExecutor:
        return self.executor

    # Proxy to the shared SessionLog.
    def get_session_log(self) -> SessionLog:
        if self.session_log is None:
            raise RuntimeError("Roll session log has not been set up.")
        return self.session_log

    @tasks.loop(seconds=ROLL_FLUSH_INTERVAL)
    async def flush_rolls(self):
        self.get_session_log().flush()

    async def setup_hook(self) -> None:
        await super().setup_hook()
        await self.register_commands()
        log.info("Commands in tree:")
        for cmd in self.tree.walk_commands():
            log.info(f"{cmd.name}")

        TEST_GUILD_ID = os.getenv("TEST_GUILD_ID")
        if TEST_GUILD_ID != None:
            log.info(
                f"Got test guild id: {TEST_GUILD_ID}; will sync app commands to test guild"
            )
            TEST_GUILD = discord.Object(id=int(TEST_GUILD_ID))
            self.tree.copy_global_to(guild=TEST_GUILD)
            await self.tree.sync(guild=TEST_GUILD)
        else:
            log.warning(
                f"No test guild id; only syncing tree to global. May take time for commands to appear."
            )
            await self.tree.sync()
        return

    # Override, near-identical to discord.Client.start().
    # Set up manager and tear down upon exit.
    # Clean up executor workers upon completion.
    async def start(self, token: str, *, reconnect: bool = True) -> None:
        self.setup_manager()

        await self.login(token)
        await self.connect(reconnect=reconnect)

        self.shutdown_manager()

    def setup_manager(self):
        if self.sync_manager != None:
            log.info("Sync manager already started.")
            return
        for key, type in SpyClient.managed_types.items():
            log.info(f"managing data type {key}: {type}")
            DataManager.register(key, type)
        self.sync_manager = DataManager()
        self.sync_manager.start()
        log.info("Sync manager started.")
        self.session_log = self.sync_manager.SessionLog(get_rolls_dir())  # type: ignore
        session = self.session_log.init()
        log.info(f"Recording rolls to session {session}")
        self.flush_rolls.start()  # also start periodic flush-to-disk task

    def shutdown_manager(self):
        self.executor.shutdown(False)
        self.flush_rolls.cancel()  # stop periodic flush-to-disk task
        if self.session_log is not None:
            self.session_log.flush()
        if self.sync_manager != None:
            self.sync_manager.shutdown()
        log.info("Sync manager shut down.")

    async def on_ready(self):
        log.info(
            f"{self.user} is now connected to Discord in guilds:"
            + f"{[(g.name, g.id) for g in self.guilds]}"
        )

    async def on_command_error(self, ctx: commands.Context, exception, /) -> None:
        if ignorable_check_failure(exception):
            return
        return await super().on_command_error(ctx, exception)

    async def register_commands(self):
        for cmd in self.misc_commands:
            cmds.swap_hybrid_command_description(cmd)
            self.add_command(cmd)
        for cog in self.misc_cogs:
            await self.add_cog(cog(self))
