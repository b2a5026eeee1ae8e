"""CLI subcommands for tarlink."""
