from chocomaint.adapters.shell.command import CmdResult, run_command

__all__ = ["CmdResult", "run_command"]
