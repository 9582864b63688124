"""
ByteCat - A byte-exact Python reimplementation of the cat utility.

This module provides functionality to:
- Concatenate files and standard input to standard output
- Number all output lines or only non-blank ones
- Squeeze runs of blank lines into one
- Mark line ends with $
- Show tabs as ^I and other non-printing bytes in ^ and M- notation
"""

__version__ = "1.0.0"
__author__ = "tboy1337"
