"""
Service d'optimisation de tournée de collecte / Collection route optimization service.

Heuristique du plus proche voisin sur une distance plane approchée.
Nearest-neighbour heuristic on an approximate planar distance.

Les points sont des objets exposant `lat` et `lng` (lignes RoutePoint ou
objets simples). Aucune validation, aucun accès base.
Points are any objects exposing `lat` and `lng` (RoutePoint rows or plain
objects). No validation, no database access.
"""

import math
from typing import Protocol, Sequence, TypeVar

# km par degré (latitude, longitude aux latitudes moyennes) / km per degree
KM_PER_DEGREE_LAT = 111.0
KM_PER_DEGREE_LNG = 85.0

# Durée : temps fixe par arrêt + minutes par km / Duration: fixed per stop + minutes per km
MINUTES_PER_STOP = 15
MINUTES_PER_KM = 5


class HasCoordinates(Protocol):
    lat: float
    lng: float


P = TypeVar("P", bound=HasCoordinates)


def approximate_distance_km(a: HasCoordinates, b: HasCoordinates) -> float:
    """Distance plane approchée en km / Approximate planar distance in km."""
    dlat = (b.lat - a.lat) * KM_PER_DEGREE_LAT
    dlng = (b.lng - a.lng) * KM_PER_DEGREE_LNG
    return math.sqrt(dlat * dlat + dlng * dlng)


def optimize_route(points: Sequence[P]) -> list[P]:
    """
    Ordonner les points par plus proche voisin / Order points by nearest neighbour.

    Le premier point reste le départ. A égalité, le premier point rencontré
    dans l'ordre d'entrée gagne. Retourne une nouvelle liste (permutation).
    The first point stays the start. On ties the earliest point in input
    order wins. Returns a new list (a permutation of the input).
    """
    if len(points) <= 1:
        return list(points)

    remaining = list(points[1:])
    ordered = [points[0]]
    current = points[0]

    while remaining:
        best_index = 0
        best_distance = approximate_distance_km(current, remaining[0])
        for index in range(1, len(remaining)):
            distance = approximate_distance_km(current, remaining[index])
            if distance < best_distance:
                best_index = index
                best_distance = distance
        current = remaining.pop(best_index)
        ordered.append(current)

    return ordered


def route_distance_km(points: Sequence[HasCoordinates]) -> float:
    """Distance totale dans l'ordre donné / Total distance in the given order."""
    return sum(approximate_distance_km(points[i], points[i + 1]) for i in range(len(points) - 1))


def estimate_duration_minutes(points: Sequence[HasCoordinates]) -> float:
    """
    Durée estimée de la tournée en minutes / Estimated run duration in minutes.
    = nombre d'arrêts * 15 + distance * 5
    """
    return len(points) * MINUTES_PER_STOP + route_distance_km(points) * MINUTES_PER_KM


def has_capacity(current: float, maximum: float, additional_weight: float = 0) -> bool:
    """Vérifier si la charge supplémentaire tient / Check if the extra load fits."""
    return (current + additional_weight) <= maximum


def savings_percent(original_count: int, optimized_count: int) -> int:
    """
    Economie annoncée après optimisation / Advertised savings after optimization.

    Calculée sur le nombre de points, pas sur la distance : l'optimisation
    étant une permutation, la valeur vaut toujours 0.
    Based on point counts, not distance: optimization is a permutation, so
    the value is always 0.
    """
    if original_count <= 0:
        return 0
    return round((original_count - optimized_count) / original_count * 100)
