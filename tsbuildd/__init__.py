"""tsbuild process layer.

Runs the build worker as a supervised child process and owns signal
handling for the whole process tree.
"""
