import sys

from pipeline.ci import main

if __name__ == "__main__":
    sys.exit(main())
