import io
import re
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.colors import LinearSegmentedColormap
from matplotlib.patches import Circle, FancyBboxPatch
import numpy as np

from utils.helpers import format_duration

WIDTH = 1200
HEIGHT = 1600
DPI = 100

START_Y = 350
ITEM_HEIGHT = 220
ITEM_SPACING = 20
CARD_MARGIN = 100

BACKGROUND = LinearSegmentedColormap.from_list("leaderboard", ["#1e3a8a", "#3b82f6", "#60a5fa"])
RANK_COLORS = {1: "#fbbf24", 2: "#9ca3af", 3: "#fb923c"}
RANK_LABELS = {1: "1st", 2: "2nd", 3: "3rd"}
DEFAULT_RANK_COLOR = "#6b7280"


def _pt(px):
    """Canvas pixels to matplotlib points."""
    return px * 72 / DPI


def truncate_title(title, limit=40):
    if len(title) > limit:
        return title[:limit - 3] + "..."
    return title


def score_color(percentage):
    if percentage >= 80:
        return "#10b981"
    if percentage >= 60:
        return "#3b82f6"
    if percentage >= 40:
        return "#fbbf24"
    return "#ef4444"


def image_filename(title, timestamp):
    slug = re.sub(r"[^a-z0-9]", "-", title.lower())
    return f"quiz-results-{slug}-{timestamp}.png"


def render_leaderboard_png(quiz_title, deadline, entries, footer="Generated by ClassQuiz"):
    """Draw the shareable leaderboard and return the PNG bytes.

    `entries` are dicts with rank, first_name, score, total_questions and
    time_taken_seconds, already sorted best first.
    """
    fig = plt.figure(figsize=(WIDTH / DPI, HEIGHT / DPI), dpi=DPI)
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_xlim(0, WIDTH)
    ax.set_ylim(HEIGHT, 0)
    ax.axis("off")

    gradient = np.linspace(0, 1, 256).reshape(-1, 1)
    ax.imshow(gradient, cmap=BACKGROUND, aspect="auto", extent=(0, WIDTH, HEIGHT, 0), zorder=0)

    for x, y, radius in ((100, 100, 150), (WIDTH - 100, 200, 120), (WIDTH / 2, HEIGHT - 100, 200)):
        ax.add_patch(Circle((x, y), radius, color="white", alpha=0.1, zorder=1))

    ax.text(WIDTH / 2, 120, "QUIZ RESULTS", color="white", fontsize=_pt(64), fontweight="bold",
            ha="center", va="baseline", zorder=2)
    ax.text(WIDTH / 2, 200, truncate_title(quiz_title), color="#fbbf24", fontsize=_pt(48), fontweight="bold",
            ha="center", va="baseline", zorder=2)
    if deadline is not None:
        ax.text(WIDTH / 2, 260, deadline.strftime("%b %d, %Y"), color="white", alpha=0.8, fontsize=_pt(32),
                ha="center", va="baseline", zorder=2)

    for index, entry in enumerate(entries):
        rank = entry.get("rank") or index + 1
        y = START_Y + index * (ITEM_HEIGHT + ITEM_SPACING)

        ax.add_patch(FancyBboxPatch(
            (CARD_MARGIN, y), WIDTH - 2 * CARD_MARGIN, ITEM_HEIGHT,
            boxstyle="round,pad=0,rounding_size=30", facecolor="white", alpha=0.95, edgecolor="none", zorder=2
        ))

        ax.add_patch(Circle((200, y + ITEM_HEIGHT / 2), 60, color=RANK_COLORS.get(rank, DEFAULT_RANK_COLOR), zorder=3))
        ax.text(200, y + ITEM_HEIGHT / 2, RANK_LABELS.get(rank, str(rank)), color="white",
                fontsize=_pt(40 if rank <= 3 else 36), fontweight="bold", ha="center", va="center", zorder=4)

        ax.text(300, y + 80, entry.get("first_name") or "Unknown", color="#1f2937", fontsize=_pt(48),
                fontweight="bold", ha="left", va="baseline", zorder=4)

        total = entry.get("total_questions") or 0
        score = entry.get("score") or 0
        percentage = round(score / total * 100) if total else 0
        ax.text(300, y + 140, f"{score}/{total} ({percentage}%)", color=score_color(percentage),
                fontsize=_pt(40), fontweight="bold", ha="left", va="baseline", zorder=4)

        if entry.get("time_taken_seconds"):
            ax.text(WIDTH - 150, y + 100, format_duration(entry["time_taken_seconds"]), color="#6b7280",
                    fontsize=_pt(28), ha="right", va="baseline", zorder=4)

    ax.text(WIDTH / 2, HEIGHT - 50, footer, color="white", alpha=0.8, fontsize=_pt(28),
            ha="center", va="baseline", zorder=2)

    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=DPI)
    plt.close(fig)
    buf.seek(0)
    return buf.getvalue()
