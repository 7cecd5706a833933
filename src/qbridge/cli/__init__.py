"""
Command-line interface for qbridge.

Built with Click.

Examples
--------
Run a bridge that listens on port 9001 and answers to port 9000:
```bash
$ qbridge run 127.0.0.1:9000 127.0.0.1:9001
```

CLI Tree
--------

```
$ qbridge --tree
cli
└── kill
└── list
└── run
```
"""

from .base import cli, tree_option
