from .task import TaskSnapshot
