from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.tree import Tree

from rule_tree.models import ChildType, ProjectedNode, TreeView

console = Console()

LOGIC_STYLES = {"AND": "blue", "OR": "green"}


def banner(
    title: str,
    subtitle: str | None = None,
    style: str = "cyan",
    out: Console | None = None,
) -> None:
    """Print a fitted panel; errors use style="red", demo steps "blue"."""
    text = title if subtitle is None else f"{title}\n{subtitle}"
    (out or console).print(Panel.fit(text, border_style=style))


def node_label(node: ProjectedNode) -> Text:
    """One line per node: index, label, logic and toggle markers."""
    label = Text(f"{node.display_index}. ", style="bold")
    label.append(node.label, style="italic" if node.effective_paused else "")

    if node.node_type == ChildType.GROUP and node.logic is not None:
        label.append(f" [{node.logic.value}]", style=LOGIC_STYLES.get(node.logic.value, ""))
    if node.effective_blocked:
        label.append(" (blocked)", style="red")
    if node.effective_paused:
        label.append(" (draft)", style="yellow")
    if node.effective_blocked:
        label.stylize("dim")

    label.append(f"  {node.node_id}", style="dim")
    return label


def render_tree(view: TreeView, title: str = "Rule Builder") -> Tree | Panel:
    if view.is_empty:
        return Panel.fit(
            "No rules yet\nUse \"group <title>\" to create your first group",
            title=title,
            border_style="cyan",
        )

    tree = Tree(Text(title, style="bold"))

    def add(branch: Tree, node: ProjectedNode) -> None:
        child_branch = branch.add(node_label(node))
        for child in node.children:
            add(child_branch, child)

    for root in view.roots:
        add(tree, root)
    return tree
