import sys

from .importer import main

if __name__ == "__main__":
    sys.exit(main())
