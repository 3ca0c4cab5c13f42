"""SessionBot: route Telegram messages to several independent agent sessions by @tag."""
