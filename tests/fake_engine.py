"""Stand-in reasoning engine used by the session and CLI tests.

Reads one command per line from stdin and answers with canned replies. The
load reply is written in two pieces to exercise partial reads.
"""

import sys
import time

LOAD_REPLY = (
    '(info "Loading network")\n'
    '(network-name "Sprinkler")\n'
    '(node-name "Rain") (node-name "Wet")\n'
    '(node-meta "Rain" :X 10.5)\n'
    '(node-meta "Rain" :Y -3)\n'
    '(node-parent "Wet" "Rain")\n'
    '(node-vals "Rain" "yes" "no")\n'
    '(node-vals "Wet" "yes" "no")\n'
    '(node-table "Rain" 0.2 0.8)\n'
    '(node-table "Wet" 0.9 0.1 0.1 0.9)\n'
    "(load-file-done)\n"
)

QUERY_REPLY = (
    '(setval "Rain" "yes" 0.3)(setval "Rain" "no" 0.7)\n'
    '(setval "Wet" "yes" 0.34)(setval "Wet" "no" 0.66)\n'
    "(query-done)\n"
)


def reply(text):
    sys.stdout.write(text)
    sys.stdout.flush()


def main():
    sys.stderr.write("fake engine ready\n")
    sys.stderr.flush()
    while True:
        line = sys.stdin.readline()
        if not line:
            return 0
        line = line.strip()
        if not line.startswith("("):
            continue
        name = line[1:].split(" ", 1)[0].rstrip(")")
        if name == "quit":
            return 0
        if name == "crash":
            return 3
        if name == "algorithms":
            reply('(add-algorithm "exact" NIL) (add-algorithm "gibbs" T)\n')
        elif name == "load-file":
            if '"missing' in line:
                reply('(error "file" "not" "found")\n')
                continue
            mid = len(LOAD_REPLY) // 2
            reply(LOAD_REPLY[:mid])
            time.sleep(0.05)
            reply(LOAD_REPLY[mid:])
        elif name == "query":
            reply(QUERY_REPLY)
        elif name == "save-file":
            if '"readonly' in line:
                reply('(error "cannot" "write")\n')
            else:
                reply("(file-save-done)\n")
        elif name == "echo":
            reply("(echoed " + line[len("(echo "):] + "\n")
        elif name in ("load-network", "set-option"):
            continue
        else:
            reply("(bogus-reply " + name + ")\n")


if __name__ == "__main__":
    sys.exit(main())
