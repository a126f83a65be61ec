from .turtlebot import TurtlebotAgent
