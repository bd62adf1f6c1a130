"""Runtime pieces shared by every node program."""
