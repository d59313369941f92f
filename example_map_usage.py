"""Example usage of the map.py module to draw assessment maps."""

import os

from redlist_metrics import Occurrence, compute_aoo, compute_eoo
from redlist_metrics.map import create_metrics_map


def main():
    """Generate example maps with and without the EOO hull and AOO grid."""

    occurrences = [
        Occurrence("p1", -10.00, -50.00),
        Occurrence("p2", -10.02, -49.91),
        Occurrence("p3", -9.94, -49.97),
        Occurrence("p4", -9.97, -50.05),
        Occurrence("p5", -9.99, -49.96, calc_status="disabled"),
    ]
    eoo = compute_eoo(occurrences)
    aoo = compute_aoo(occurrences, 2000)
    os.makedirs('temp', exist_ok=True)

    # Example 1: points only
    print("Creating map of the occurrences only...")
    points_path = create_metrics_map(occurrences, 'temp/points_only.png', title='Occurrences')
    print(f"✓ Points map saved to: {points_path}")

    # Example 2: full assessment with hull, 2 km grid and coastlines
    print("\nCreating assessment map with EOO and AOO...")
    full_path = create_metrics_map(
        occurrences,
        'temp/assessment.png',
        eoo=eoo,
        aoo=aoo,
        title=f'EOO {eoo.area_km2:.1f} km² / AOO {aoo.area_km2:.0f} km²',
        show_coastlines=True,
    )
    print(f"✓ Assessment map saved to: {full_path}")

    # Example 3: coarser 10 km grid at a higher resolution
    print("\nCreating map with a 10 km AOO grid...")
    coarse_path = create_metrics_map(
        occurrences,
        'temp/assessment_10km.png',
        aoo=compute_aoo(occurrences, 10_000),
        dpi=300,
    )
    print(f"✓ Coarse grid map saved to: {coarse_path}")


if __name__ == "__main__":
    main()
