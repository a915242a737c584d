"""Process exit codes for the tiddlysync CLI."""

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2
DATABASE_ERROR = 3
CONFIG_ERROR = 4
