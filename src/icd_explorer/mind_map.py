"""
Mind-map graph builder.

Lays out ICD codes in a row across the top, each code's drugs in a two-column
grid below-left and its clinical trials below-right. The output is a plain
node/edge structure a graph renderer can draw as-is.
"""

from typing import Optional

CENTER_X = 500
ICD_ROW_Y = 100
DRUG_ROW_Y = 350
TRIAL_ROW_Y = 350
HORIZONTAL_SPACING = 180
DRUG_OFFSET_X = -200
TRIAL_OFFSET_X = 200

GRID_COLUMN_WIDTH = 80
GRID_ROW_HEIGHT = 60

ICD_EDGE_STYLE = {"stroke": "#00D084", "strokeWidth": 2, "opacity": 0.4}
DRUG_EDGE_STYLE = {"stroke": "#3B82F6", "strokeWidth": 1.5, "opacity": 0.5, "strokeDasharray": "5,5"}
TRIAL_EDGE_STYLE = {"stroke": "#9333EA", "strokeWidth": 1.5, "opacity": 0.5, "strokeDasharray": "5,5"}


def _grid_position(start_x: float, row_y: float, index: int) -> dict:
    return {
        "x": start_x + (index % 2) * GRID_COLUMN_WIDTH - GRID_COLUMN_WIDTH / 2,
        "y": row_y + (index // 2) * GRID_ROW_HEIGHT,
    }


def _edge(edge_id: str, source: str, target: str, style: dict) -> dict:
    return {
        "id": edge_id,
        "source": source,
        "target": target,
        "type": "default",
        "animated": True,
        "style": dict(style),
    }


def build_mind_map(
    results: list[dict],
    drugs_by_code: Optional[dict[str, list[dict]]] = None,
    trials_by_code: Optional[dict[str, list[dict]]] = None,
) -> dict:
    """Build {nodes, edges, stats} for ICD results and their drugs and trials."""
    drugs_by_code = drugs_by_code or {}
    trials_by_code = trials_by_code or {}
    nodes: list[dict] = []
    edges: list[dict] = []
    drug_count = 0
    trial_count = 0

    icd_start_x = CENTER_X - ((len(results) - 1) * HORIZONTAL_SPACING) / 2

    for index, result in enumerate(results):
        code = result["code"]
        x = icd_start_x + index * HORIZONTAL_SPACING
        nodes.append(
            {
                "id": code,
                "type": "icdNode",
                "position": {"x": x, "y": ICD_ROW_Y},
                "data": {"code": code, "name": result.get("name", ""), "category": code.split(".")[0]},
            }
        )
        if index > 0:
            previous = results[index - 1]["code"]
            edges.append(_edge(f"e-icd-{previous}-{code}", previous, code, ICD_EDGE_STYLE))

        for drug_index, drug in enumerate(drugs_by_code.get(code) or []):
            drug_id = f"drug-{code}-{drug_index}"
            nodes.append(
                {
                    "id": drug_id,
                    "type": "drugNode",
                    "position": _grid_position(x + DRUG_OFFSET_X, DRUG_ROW_Y, drug_index),
                    "data": {
                        "brandName": drug.get("brandName", ""),
                        "genericName": drug.get("genericName", ""),
                        "sourceIcdCode": code,
                    },
                }
            )
            edges.append(_edge(f"e-drug-{code}-{drug_index}", code, drug_id, DRUG_EDGE_STYLE))
            drug_count += 1

        for trial_index, trial in enumerate(trials_by_code.get(code) or []):
            trial_id = f"trial-{code}-{trial_index}"
            nodes.append(
                {
                    "id": trial_id,
                    "type": "trialNode",
                    "position": _grid_position(x + TRIAL_OFFSET_X, TRIAL_ROW_Y, trial_index),
                    "data": {
                        "nctId": trial.get("nctId", ""),
                        "title": trial.get("title", ""),
                        "status": trial.get("status", ""),
                        "sourceIcdCode": code,
                    },
                }
            )
            edges.append(_edge(f"e-trial-{code}-{trial_index}", code, trial_id, TRIAL_EDGE_STYLE))
            trial_count += 1

    return {
        "nodes": nodes,
        "edges": edges,
        "stats": {"icdCount": len(results), "drugCount": drug_count, "trialCount": trial_count},
    }


async def _build_tool(args: dict) -> dict:
    return build_mind_map(args.get("results") or [], args.get("drugs_by_code"), args.get("trials_by_code"))


TOOLS = [
    {
        "name": "build_mind_map",
        "description": "Lay out ICD-10 results with their drugs and clinical trials as a node/edge graph.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "results": {
                    "type": "array",
                    "description": "ICD-10 results, each with 'code' and 'name'",
                    "items": {"type": "object"},
                },
                "drugs_by_code": {"type": "object", "description": "ICD-10 code -> list of drug results"},
                "trials_by_code": {"type": "object", "description": "ICD-10 code -> list of clinical trial results"},
            },
            "required": ["results"],
        },
    },
]

HANDLERS = {
    "build_mind_map": _build_tool,
}
