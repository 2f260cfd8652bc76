from chanbot.bot.events import JoinEvent, NickEvent, Prefix, PrivmsgEvent, RawEvent
from chanbot.clients.irc.transport import event_from_message


def test_prefix_parse() -> None:
    assert Prefix.parse("nick!user@host.example") == Prefix(
        nick="nick", user="user", host="host.example"
    )
    assert Prefix.parse(None) == Prefix(nick="NONE", user="NONE", host="NONE")
    assert Prefix.parse("nick") == Prefix(nick="nick", user="NONE", host="NONE")


def test_privmsg_event() -> None:
    event = event_from_message("PRIVMSG", "a!b@c", ["#chan", "hello world"])

    assert isinstance(event, PrivmsgEvent)
    assert event.target == "#chan"
    assert event.text == "hello world"
    assert event.prefix == Prefix(nick="a", user="b", host="c")


def test_join_and_nick_events() -> None:
    join = event_from_message("join", "a!b@c", ["#chan"])
    nick = event_from_message("NICK", "a!b@c", ["z"])

    assert isinstance(join, JoinEvent) and join.channel == "#chan"
    assert isinstance(nick, NickEvent) and nick.new_nick == "z"


def test_server_messages_have_no_origin() -> None:
    event = event_from_message(1, "irc.example.net", ["chanbot", "Welcome"])

    assert isinstance(event, RawEvent)
    assert event.command == "001"
    assert event.prefix is None
    assert event.params == ("chanbot", "Welcome")
