from typing import TYPE_CHECKING

from loguru import logger

from ..shared.exceptions import ConfigurationError
from ..shared.runtime_config import RuntimeConfig
from .events import JoinEvent, PrivmsgEvent, TransportEvent
from .operations import ChangeNick, GrantOperator, GrantVoice, Invite, JoinChannel
from .registry import HandlerRegistry

if TYPE_CHECKING:
    from .core import ChanBot

__all__ = (
    "handle_dumpacl",
    "handle_invite",
    "handle_join",
    "handle_join_channel",
    "handle_mode_o",
    "handle_mode_v",
    "handle_nick",
    "handle_reload",
    "handle_say",
    "setup_handlers",
)


def setup_handlers(registry: HandlerRegistry, config: RuntimeConfig) -> HandlerRegistry:
    registry.clear()
    registry.register_observer(handle_join)

    # open to anyone
    registry.register_open(config.cmd_invite, handle_invite)
    registry.register_open(config.cmd_mode_o, handle_mode_o)
    registry.register_open(config.cmd_mode_v, handle_mode_v)

    # privileged nicks only
    registry.register_privileged(config.cmd_dumpacl, handle_dumpacl)
    registry.register_privileged(config.cmd_join, handle_join_channel)
    registry.register_privileged(config.cmd_nick, handle_nick)
    registry.register_privileged(config.cmd_reload, handle_reload)
    registry.register_privileged(config.cmd_say, handle_say)
    return registry


def handle_join(bot: "ChanBot", event: TransportEvent) -> bool:
    if not isinstance(event, JoinEvent):
        return False
    sender = bot.sender
    logger.info(f"JOIN <{sender.nick}> {sender.userhost} {event.channel}")
    if sender.nick == bot.mynick:
        return False
    if (hit := bot.config.auto_o_acl.match(sender.userhost)) is None:
        return False
    i, rule = hit
    logger.info(f"JOIN auto-op: ACL match {sender.userhost} at index {i}: {rule}")
    bot.new_op(GrantOperator(channel=event.channel, nick=sender.nick))
    return True


def handle_reload(bot: "ChanBot", msg: PrivmsgEvent, cmd: str, args: str) -> bool:
    logger.warning("*** RELOADING CONFIG ***")
    nick = bot.sender.nick
    try:
        bot.reload()
    except ConfigurationError as e:
        logger.error(f"Reload failed: {e}")
        bot.new_msg(nick, str(e))
        return True
    bot.new_msg(nick, "*** Reload successful.")
    return True


def handle_dumpacl(bot: "ChanBot", msg: PrivmsgEvent, cmd: str, args: str) -> bool:
    logger.info("Dumping ACLs")
    nick = bot.sender.nick
    config = bot.config
    for header, acl in (
        ("My +o ACL:", config.mode_o_acl),
        ("My auto +o ACL:", config.auto_o_acl),
    ):
        bot.new_msg(nick, header)
        for rule in acl.rules:
            bot.new_msg(nick, rule)
        bot.new_msg(nick, "<EOF>")
    return True


def handle_say(bot: "ChanBot", msg: PrivmsgEvent, cmd: str, args: str) -> bool:
    if args.startswith("#"):
        channel, sep, text = args.partition(" ")
        if sep:
            bot.new_msg(channel, text)
            return True
    bot.new_msg(bot.config.channel, args)
    return True


def handle_nick(bot: "ChanBot", msg: PrivmsgEvent, cmd: str, args: str) -> bool:
    logger.info(f"Trying to change nick to {args}")
    bot.new_op(ChangeNick(nick=args))
    return True


def handle_join_channel(bot: "ChanBot", msg: PrivmsgEvent, cmd: str, args: str) -> bool:
    logger.info(f"Trying to join channel {args}")
    bot.new_op(JoinChannel(channel=args))
    return True


def handle_invite(bot: "ChanBot", msg: PrivmsgEvent, cmd: str, args: str) -> bool:
    sender = bot.sender
    config = bot.config
    if (hit := config.invite_deny_host_acl.match(sender.host)) is not None:
        logger.info(f"Invite refused for {sender.nick}: host {sender.host} matches {hit[1]}")
        return False
    if (hit := config.invite_deny_nick_acl.match(sender.nick)) is not None:
        logger.info(f"Invite refused for {sender.nick}: nick matches {hit[1]}")
        return False
    logger.info(f"Inviting {sender.nick} to {config.channel}")
    bot.new_op(Invite(nick=sender.nick, channel=config.channel))
    return True


def handle_mode_o(bot: "ChanBot", msg: PrivmsgEvent, cmd: str, args: str) -> bool:
    sender = bot.sender
    channel = bot.config.channel
    if (hit := bot.config.mode_o_acl.match(sender.userhost)) is not None:
        i, rule = hit
        logger.info(f"ACL match {sender.userhost} at index {i}: {rule}")
        bot.new_op(GrantOperator(channel=channel, nick=sender.nick))
    else:
        logger.info(f"ACL check failed for {sender.userhost}. Fallback +v.")
        bot.new_op(GrantVoice(channel=channel, nick=sender.nick))
    return True


def handle_mode_v(bot: "ChanBot", msg: PrivmsgEvent, cmd: str, args: str) -> bool:
    bot.new_op(GrantVoice(channel=bot.config.channel, nick=bot.sender.nick))
    return True
