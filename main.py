"""
Demo: muon self-energy and anomalous magnetic moment in QED, then a
numerical library for the results.
Run from project root: python main.py [--no-pause] [--verbose]
"""
import argparse
import logging
import sys
from pathlib import Path

# Add src to path so imports work when run from project root (must be before imports from src)
sys.path.insert(0, str(Path(__file__).parent / "src"))

from amplitudes import Order, incoming, outgoing
from codegen import Library
from display import display, render_expression, render_feynman_rules
from errors import LoopIntegralReductionError
from loops import evaluate_integrals, expand_abbreviations
from model import DIRAC, Model
from simplify import canonicalize
from wilson import DiracCoupling, get_wilson_coefficient, magnetic_operator

logger = logging.getLogger("demo")


def build_model():
    model = Model("QED")
    model.add_gauged_group("em", "e")
    model.init()
    model.rename_particle("A_em", "A")
    # Charge -1 under em
    model.add_particle("mu", DIRAC, mass="m_mu", charges={"em": -1}, latex="\\mu")
    return model.finalize()


def pause(args, message):
    print(f"\n{message}")
    if not args.no_pause:
        input()


def banner(title):
    print("###############################")
    print(f"####  {title}")
    print("###############################\n")


def save_figure(args, filename, plot, obj):
    if args.plots is None:
        return
    import matplotlib

    matplotlib.use("Agg")
    from plots import diagrams

    getattr(diagrams, plot)(obj, save_path=Path(args.plots) / filename)


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--no-pause", action="store_true", help="do not wait for enter between steps")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    parser.add_argument("--output", default=".", help="directory for the generated library")
    parser.add_argument("--plots", default=None, help="directory for diagram figures (skipped if unset)")
    parser.add_argument("--n-jobs", type=int, default=1, help="joblib workers for diagram reduction")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    model = build_model()
    display(model)
    print(render_feynman_rules(model))
    save_figure(args, "feynman_rules.png", "plot_feynman_rules", model)

    pause(args, "Press enter to launch the calculation of the muon self-energy ...")

    banner("MUON SELF-ENERGY")
    # Off-shell muons so that the Dirac equation is not applied
    self_energy = model.compute_amplitude(
        Order.ONE_LOOP,
        [incoming("mu", on_shell=False), outgoing("mu", on_shell=False)],
        n_jobs=args.n_jobs,
    )
    context = self_energy.context
    print("AMPLITUDE RESULTS:")
    display(self_energy)
    save_figure(args, "self_energy.png", "plot_diagrams", self_energy)

    print("WILSON COEFFICIENT RESULTS:")
    wilsons_self_energy = model.get_wilson_coefficients(self_energy)
    display(wilsons_self_energy)

    m_term = wilsons_self_energy[0].coefficient
    p_term = wilsons_self_energy[1].coefficient
    print("DECOMPOSITION OF THE TWO CONTRIBUTIONS:")
    print(f"M-term contribution: {expand_abbreviations(m_term, context)}")
    print(f"P-term contribution: {expand_abbreviations(p_term, context)}\n")

    squared = model.compute_squared_amplitude(self_energy)
    evaluated_squared = expand_abbreviations(squared, context)
    simplified_squared = canonicalize(evaluated_squared)
    print("SQUARED AMPLITUDE RESULT:")
    print(f"\nM2              = {render_expression(squared)}")
    print(f"\nM2 [evaluated]  = {render_expression(evaluated_squared)}")
    print(f"\nM2 [simplified] = {render_expression(simplified_squared)}")

    pause(args, "Press enter to launch the calculation of (g-2) ...")

    banner("MUON MAGNETIC MOMENT")
    wilsons_vertex = model.compute_wilson_coefficients(
        Order.ONE_LOOP,
        [incoming("mu"), outgoing("mu"), outgoing("A")],
        context=context,
        n_jobs=args.n_jobs,
    )
    print("WILSON COEFFICIENTS RESULTS:")
    display(wilsons_vertex)

    operator = magnetic_operator(model, wilsons_vertex, DiracCoupling.S)
    magnetic_moment = get_wilson_coefficient(wilsons_vertex, operator)
    evaluated_moment = expand_abbreviations(magnetic_moment, context)
    try:
        evaluated_moment = evaluate_integrals(evaluated_moment)
    except LoopIntegralReductionError as exc:
        logger.warning("Keeping the Feynman-parameter integral unevaluated: %s", exc)
    simplified_moment = canonicalize(evaluated_moment)

    print("MAGNETIC MOMENT RESULTS:")
    print(f"Muon magnetic moment              = {magnetic_moment}")
    print(f"Muon magnetic moment [evaluated]  = {evaluated_moment}")
    print(f"Muon magnetic moment [simplified] = {simplified_moment}")

    pause(args, "Press enter to launch the library generation ...")

    lib = Library("demolib", args.output)
    lib.clean_existing_sources()
    lib.add_function("mu_self_e_mterm", m_term, context)
    lib.add_function("mu_self_e_pterm", p_term, context)
    lib.add_function("mu_self_e_squared", squared, context)
    lib.add_function("mu_magnetic_vertex", magnetic_moment, context)
    lib.add_function("mu_magnetic_vertex_eval", evaluated_moment, context)
    lib.add_function("mu_magnetic_vertex_simpli", simplified_moment, context)
    path = lib.build()
    print(f"Library written to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
