"""DMR tier III trunking controller core: channels, queues, routing, rewriting, settings, id lookup and RC4 authentication."""

__version__ = "0.1.0"
__all__ = [
    "logger",
    "rc4",
    "idlookup",
    "rewrite",
    "router",
    "cfgformat",
    "settings",
    "queues",
    "channel",
]