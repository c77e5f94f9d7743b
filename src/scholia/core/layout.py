"""
Force-directed layout for the tag graph.

All pairs repel, edges act as springs, velocities are damped each step and
both forces are scaled by a temperature that falls from 1 toward a small
floor, so the system settles instead of oscillating. Positions are
threaded through by the caller; ``step`` keeps no state of its own.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, replace

from .graph import GraphData, GraphNode

Point = tuple[float, float]

MIN_SCALE = 0.3
MAX_SCALE = 3.0
HIT_SLOP = 1.5


@dataclass(frozen=True)
class LayoutParams:
    spread: float = 200.0
    repulsion: float = 5000.0
    spring_strength: float = 0.01
    spring_length: float = 150.0
    damping: float = 0.9
    steps: int = 200
    min_temperature: float = 0.1


@dataclass(frozen=True)
class NodePosition:
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0


Positions = dict[str, NodePosition]


class ForceLayout:
    def __init__(self, params: LayoutParams | None = None, rng: random.Random | None = None):
        self.params = params or LayoutParams()
        self.rng = rng or random.Random()

    def initial_positions(self, graph: GraphData) -> Positions:
        """Jittered ring: node i at angle 2*pi*i/n."""
        n = len(graph.nodes)
        spread = self.params.spread
        positions: Positions = {}
        for i, node in enumerate(graph.nodes):
            angle = 2 * math.pi * i / n
            r = spread * (0.3 + 0.7 * self.rng.random())
            positions[node.tag] = NodePosition(x=r * math.cos(angle), y=r * math.sin(angle))
        return positions

    def temperature(self, step: int, steps: int) -> float:
        if steps <= 0:
            return self.params.min_temperature
        return max(self.params.min_temperature, 1.0 - step / steps)

    def step(self, graph: GraphData, positions: Positions, temperature: float) -> Positions:
        p = self.params
        tags = [n.tag for n in graph.nodes if n.tag in positions]
        n = len(tags)
        if n == 0:
            return dict(positions)

        xs = [positions[t].x for t in tags]
        ys = [positions[t].y for t in tags]
        vxs = [positions[t].vx for t in tags]
        vys = [positions[t].vy for t in tags]

        for i in range(n):
            for j in range(i + 1, n):
                dx = xs[i] - xs[j]
                dy = ys[i] - ys[j]
                dist_sq = max(1.0, dx * dx + dy * dy)
                dist = math.sqrt(dist_sq)
                force = p.repulsion / dist_sq * temperature
                fx = force * dx / dist
                fy = force * dy / dist
                vxs[i] += fx
                vys[i] += fy
                vxs[j] -= fx
                vys[j] -= fy

        slot = {tag: i for i, tag in enumerate(tags)}
        for edge in graph.edges:
            i1 = slot.get(edge.tag1)
            i2 = slot.get(edge.tag2)
            if i1 is None or i2 is None:
                continue
            dx = xs[i2] - xs[i1]
            dy = ys[i2] - ys[i1]
            dist = max(1.0, math.sqrt(dx * dx + dy * dy))
            force = p.spring_strength * (dist - p.spring_length) * temperature
            fx = force * dx / dist
            fy = force * dy / dist
            vxs[i1] += fx
            vys[i1] += fy
            vxs[i2] -= fx
            vys[i2] -= fy

        result = dict(positions)
        for i, tag in enumerate(tags):
            vx = vxs[i] * p.damping
            vy = vys[i] * p.damping
            result[tag] = replace(positions[tag], x=xs[i] + vx, y=ys[i] + vy, vx=vx, vy=vy)
        return result

    def run(self, graph: GraphData, steps: int | None = None) -> dict[str, Point]:
        total = self.params.steps if steps is None else steps
        positions = self.initial_positions(graph)
        for i in range(total):
            positions = self.step(graph, positions, self.temperature(i, total))
        return {tag: (pos.x, pos.y) for tag, pos in positions.items()}


def node_radius(count: int, max_count: int) -> float:
    return 15.0 + 25.0 * (count / max(1, max_count))


def clamp_scale(scale: float) -> float:
    return min(MAX_SCALE, max(MIN_SCALE, scale))


def to_layout_space(point: Point, pan: Point, scale: float, viewport: Point) -> Point:
    """Undo the view transform (origin at viewport centre, then pan, then zoom)."""
    scale = clamp_scale(scale)
    return (
        (point[0] - pan[0] - viewport[0] / 2.0) / scale,
        (point[1] - pan[1] - viewport[1] / 2.0) / scale,
    )


def hit_test(graph: GraphData, layout: dict[str, Point], point: Point) -> GraphNode | None:
    """First node (graph order) whose centre lies within 1.5 radii of ``point``."""
    max_count = graph.max_count()
    for node in graph.nodes:
        pos = layout.get(node.tag)
        if pos is None:
            continue
        reach = HIT_SLOP * node_radius(node.count, max_count)
        if math.hypot(point[0] - pos[0], point[1] - pos[1]) <= reach:
            return node
    return None
