"""Render a finished run's score history and candidate lineage to PNG."""

from pathlib import Path
from typing import Dict, Tuple

import networkx as nx
from loguru import logger

from ..models import OptimizationRun

PLOT_FILENAME = "run.png"


class RunPlotter:
    """Plots one optimization run: batch scores per rollout and the accepted-candidate tree."""

    def __init__(self, title: str = "GEPA Optimization"):
        self.title = title

    def build_graph(self, run: OptimizationRun) -> nx.DiGraph:
        """Lineage graph of accepted candidates, edges from parent to child."""
        graph = nx.DiGraph()
        for entry in run.accepted_prompts:
            node_id = entry.candidate_id or f"candidate-{entry.iteration}"
            graph.add_node(
                node_id,
                iteration=entry.iteration,
                score=entry.score,
                is_seed=entry.iteration == 0,
            )
            if entry.parent_id and entry.parent_id in graph:
                graph.add_edge(entry.parent_id, node_id)
        return graph

    def render(self, run: OptimizationRun, output_path: Path) -> Path:
        """Save the plot to ``output_path`` and return it."""
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        fig, (score_ax, tree_ax) = plt.subplots(1, 2, figsize=(16, 7))
        self._draw_scores(run, score_ax)
        self._draw_lineage(run, tree_ax)
        fig.suptitle(
            f"{self.title}\nRun: {run.id} | Best score: {run.best_score:.2f} | "
            f"Collection: {run.collection_size}",
            fontsize=14,
            fontweight="bold",
        )
        plt.tight_layout()
        fig.savefig(output_path, dpi=150)
        plt.close(fig)
        logger.info(f"Saved run plot: {output_path}")
        return output_path

    def _draw_scores(self, run: OptimizationRun, ax) -> None:
        accepted = [(e.iteration, e.score) for e in run.prompts if e.accepted]
        rejected = [(e.iteration, e.score) for e in run.prompts if not e.accepted]

        best = []
        running = 0.0
        for entry in sorted(run.prompts, key=lambda e: e.iteration):
            if entry.accepted:
                running = max(running, entry.score)
            best.append((entry.iteration, running))

        if best:
            ax.step(*zip(*best), where="post", color="#3498db", label="Best score")
        if accepted:
            ax.scatter(*zip(*accepted), color="#2ecc71", label="Accepted", zorder=3)
        if rejected:
            ax.scatter(*zip(*rejected), color="#e74c3c", marker="x", label="Rejected", zorder=3)

        ax.set_xlabel("Iteration")
        ax.set_ylabel("Batch score")
        ax.set_ylim(-0.05, 1.05)
        ax.grid(alpha=0.3)
        ax.legend(loc="lower right", fontsize=9)

    def _draw_lineage(self, run: OptimizationRun, ax) -> None:
        from matplotlib.patches import Patch

        graph = self.build_graph(run)
        ax.axis("off")
        if len(graph.nodes) == 0:
            ax.text(0.5, 0.5, "No accepted candidates", ha="center", va="center", fontsize=14)
            return

        pos = self._layout(graph)
        node_colors = []
        node_sizes = []
        for node_id in graph.nodes():
            node = graph.nodes[node_id]
            score = node["score"]
            if node["is_seed"]:
                color = "#3498db"
            elif score >= 0.8:
                color = "#2ecc71"
            elif score >= 0.6:
                color = "#f39c12"
            else:
                color = "#e74c3c"
            node_colors.append(color)
            node_sizes.append(1000 if node["is_seed"] else 600)

        nx.draw_networkx_nodes(graph, pos, node_color=node_colors, node_size=node_sizes, ax=ax, alpha=0.9)
        nx.draw_networkx_edges(
            graph, pos, edge_color="#95a5a6",
            arrows=True, arrowsize=15, width=2, ax=ax, alpha=0.6
        )
        labels = {
            node_id: (
                f"Seed\n{graph.nodes[node_id]['score']:.2f}"
                if graph.nodes[node_id]["is_seed"]
                else f"I{graph.nodes[node_id]['iteration']}\n{graph.nodes[node_id]['score']:.2f}"
            )
            for node_id in graph.nodes()
        }
        nx.draw_networkx_labels(graph, pos, labels, font_size=8, font_weight="bold", ax=ax)

        ax.legend(
            handles=[
                Patch(facecolor="#3498db", label="Seed"),
                Patch(facecolor="#2ecc71", label="Score >= 0.8"),
                Patch(facecolor="#f39c12", label="Score 0.6-0.8"),
                Patch(facecolor="#e74c3c", label="Score < 0.6"),
            ],
            loc="upper left",
            fontsize=9,
            framealpha=0.9,
        )
        ax.set_xlim(-0.05, 1.05)
        ax.set_ylim(-0.05, 1.05)

    def _layout(self, graph: nx.DiGraph) -> Dict[str, Tuple[float, float]]:
        """Rows by depth from the roots, spread evenly within a row."""
        depth: Dict[str, int] = {}
        for node_id in nx.topological_sort(graph):
            parents = list(graph.predecessors(node_id))
            depth[node_id] = max((depth[p] + 1 for p in parents), default=0)

        rows: Dict[int, list] = {}
        for node_id, level in depth.items():
            rows.setdefault(level, []).append(node_id)

        max_depth = max(rows) if rows else 0
        pos = {}
        for level, node_ids in rows.items():
            y = 1.0 - (level / max(max_depth, 1))
            for i, node_id in enumerate(node_ids):
                x = 0.5 if len(node_ids) == 1 else 0.1 + (i / (len(node_ids) - 1)) * 0.8
                pos[node_id] = (x, y)
        return pos
