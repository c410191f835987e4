"""Rich renderables for structural models."""

from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ...core.highlight import HighlightIndex, collect_highlights
from ...core.layout import is_dangling
from ...core.models import StructuralModel

HIGHLIGHT_STYLE = "bold black on yellow"


def summary_table(model: StructuralModel) -> Table:
    """Per-package counts of files, structs, fields and methods."""
    dangling = sum(1 for edge in model.edges if is_dangling(edge, model))
    table = Table(
        title="Structural Model",
        show_header=True,
        caption=(
            f"{len(model.edges)} edges ({dangling} dangling), "
            f"{len(model.global_functions)} global functions"
        ),
    )
    table.add_column("Package", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Structs", justify="right", style="green")
    table.add_column("Fields", justify="right")
    table.add_column("Methods", justify="right")

    for package in model.packages:
        structs = [s for f in package.files for s in f.structs]
        table.add_row(
            package.name,
            str(len(package.files)),
            str(len(structs)),
            str(sum(len(s.fields) for s in structs)),
            str(sum(len(s.methods) for s in structs)),
        )
    return table


def _label(text: str, highlighted: bool, style: str = "") -> Text:
    return Text(text, style=HIGHLIGHT_STYLE if highlighted else style)


def model_tree(model: StructuralModel, index: HighlightIndex | None = None) -> Tree:
    """Package → file → struct tree with search matches highlighted."""
    index = index or HighlightIndex()
    marks = collect_highlights(model, index)
    root = Tree(Text("packages", style="bold"))

    for package in model.packages:
        package_node = root.add(
            _label(package.name, package.name in marks.packages, "bold cyan")
        )
        for file in package.files:
            file_node = package_node.add(
                _label(file.name, (package.name, file.name) in marks.files, "blue")
            )
            for struct in file.structs:
                key = (package.name, file.name, struct.name)
                struct_node = file_node.add(
                    _label(struct.name, key in marks.structs, "bold green")
                )
                for i, struct_field in enumerate(struct.fields):
                    struct_node.add(
                        _label(
                            f"f {struct_field.name} {struct_field.type.literal}",
                            (key, i) in marks.fields,
                        )
                    )
                for i, method in enumerate(struct.methods):
                    returns = ", ".join(t.literal for t in method.return_type)
                    struct_node.add(
                        _label(
                            f"m {method.name}() {returns}".rstrip(),
                            (key, i) in marks.methods,
                            "magenta",
                        )
                    )

    if model.global_functions:
        functions_node = root.add(Text("global functions", style="bold"))
        for i, function in enumerate(model.global_functions):
            functions_node.add(
                _label(
                    f"{function.package}.{function.name} ({function.file})",
                    i in marks.functions,
                )
            )
    return root
