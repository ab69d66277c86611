"""
Command line interface (argparse). Entry point: gitcircles.cli.main:main.
"""
