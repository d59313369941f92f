from redlist_metrics import CriterionBInput, DeclineIndicator, Occurrence, compute_aoo, compute_eoo, infer_criterion_b
from redlist_metrics.config import DEFAULT_CELL_SIZE_METERS

def main():
    """Main function to calculate EOO, AOO and a Criterion B suggestion for a few records."""

    occurrences = [
        Occurrence("p1", -10.00, -50.00, label="Rio Claro"),
        Occurrence("p2", -10.00, -49.95, label="Serra Azul"),
        Occurrence("p3", -9.95, -50.00, label="Lagoa Seca"),
        Occurrence("p4", -9.97, -49.98, label="Lagoa Seca (revisit)", calc_status="disabled"),
        Occurrence("p5", 0.0, 0.0, label="missing coordinates"),
    ]

    eoo = compute_eoo(occurrences)
    print(f'EOO area: {eoo.area_km2:.2f} km² from {eoo.points_used} points (hash {eoo.input_hash})')

    aoo = compute_aoo(occurrences, DEFAULT_CELL_SIZE_METERS)
    print(f'AOO area: {aoo.area_km2:.2f} km² in {aoo.cell_count} cells (hash {aoo.input_hash})')

    inference = infer_criterion_b(
        eoo.area_km2 if eoo.hull is not None else None,
        aoo.area_km2 if aoo.cell_count else None,
        assessment=CriterionBInput(
            severely_fragmented=True,
            continuing_decline=DeclineIndicator(enabled=True, items=frozenset({"iii"})),
        ),
    )
    print(f'Suggested: {inference.suggested_code or inference.spatial_category}')
    for note in inference.notes:
        print(f'  - {note}')

if __name__ == "__main__":
    main()
