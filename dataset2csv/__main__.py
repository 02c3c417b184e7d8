import sys

from dataset2csv.cli import main

if __name__ == "__main__":
    sys.exit(main())
