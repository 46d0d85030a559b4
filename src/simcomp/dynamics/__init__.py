from .body import Body, Coordinate, Ground
from .forces import Force
from .ligament import Ligament
from .path import GeometryPath, PathPoint, PointForceDirection
from .scaling import Scale, ScaleSet
