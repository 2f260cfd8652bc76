__all__ = ("ConfigKeys",)


class ConfigKeys:
    IRC_SERVER = "irc.server"
    IRC_PORT = "irc.port"
    IRC_TLS = "irc.tls"
    IRC_TLS_VERIFY = "irc.tls_verify"
    IRC_NICKNAME = "irc.nickname"
    IRC_USERNAME = "irc.username"
    IRC_REALNAME = "irc.realname"
    IRC_PASSWORD = "irc.password"
    IRC_SASL_USERNAME = "irc.sasl_username"
    IRC_SASL_PASSWORD = "irc.sasl_password"
    BOT_CHANNEL = "bot.channel"
    BOT_IRC_LOG_DIR = "bot.irc_log_dir"
    BOT_URL_LOG_DB = "bot.url_log_db"
    LOG_PATH = "log.path"
    LOG_LEVEL = "log.level"
