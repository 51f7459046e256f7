import os
import sys

print(os.getcwd(), flush=True)
print("Something good happened", flush=True)
print("Something bad happened", file=sys.stderr, flush=True)
