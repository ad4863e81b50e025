import logging
import sys
from pathlib import Path

import fncli

from . import config, db
from .core.errors import TallyError


def main():
    logging.basicConfig(
        level=config.get_log_level(), format="%(levelname)s %(name)s: %(message)s"
    )
    db.init()
    fncli.autodiscover(Path(__file__).parent, "tally")

    user_args = sys.argv[1:]
    if not user_args:
        user_args = ["ls"]
    argv = ["tally", *user_args]
    try:
        code = fncli.dispatch(argv)
    except TallyError as e:
        sys.stderr.write(f"{e}\n")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
