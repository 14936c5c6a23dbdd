from __future__ import annotations

import math

from pygame.math import Vector2


def normalize(vector: Vector2) -> Vector2:
    if vector.length_squared() > 0:
        vector.normalize_ip()
    return vector


def limit(vector: Vector2, max_length: float) -> Vector2:
    if vector.length_squared() > max_length * max_length:
        vector.scale_to_length(max_length)
    return vector


def limit_low(vector: Vector2, min_length: float) -> Vector2:
    length_sq = vector.length_squared()
    if 0 < length_sq < min_length * min_length:
        vector.scale_to_length(min_length)
    return vector


def subtract(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x - b.x, a.y - b.y)


def scaled_direction(vector: Vector2, length: float) -> Vector2:
    direction = normalize(vector.copy())
    direction *= length
    return direction


def polar_offset(distance: float, angle_degrees: float) -> Vector2:
    theta = math.radians(angle_degrees)
    return Vector2(distance * math.cos(theta), distance * math.sin(theta))


def heading_degrees(vector: Vector2) -> float:
    return math.degrees(math.atan2(vector.y, vector.x))


def constrain(value: float, low: float, high: float) -> float:
    if value > high:
        return high
    if value < low:
        return low
    return value


def map_range(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    if in_max == in_min:
        return out_min
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)
