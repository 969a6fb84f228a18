from gestetner.cli import cli

cli(prog_name="gestetner")
