"""dockship - push a Dockerized git repo to a single host behind nginx"""

__version__ = "0.1.0"
