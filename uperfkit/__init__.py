"""Network benchmark toolkit: workload profiles, control messages and interface statistics."""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "commands",
    "flowop_options",
    "flowops",
    "goodbye",
    "lexer",
    "messagelog",
    "netstat",
    "numbers",
    "profile",
    "workload",
]