from hellofn.host import main

__all__ = ["main"]
