from typing import List, Tuple

from shocksim.core.constants import NORMAL_RANGES
from shocksim.core.state import VitalSigns


def detect_alerts(vitals: VitalSigns, ranges: dict = None) -> Tuple[List[str], List[str]]:
    """
    Bedside monitor alarms.

    Returns (critical_alerts, warnings): critical alerts fire beyond the
    critical limits, warnings once a value leaves its normal range.
    """
    ranges = ranges or NORMAL_RANGES
    hr, sbp, mean = ranges["heart_rate"], ranges["systolic"], ranges["map"]
    spo2, temp = ranges["spo2"], ranges["temperature"]

    critical: List[str] = []
    warnings: List[str] = []

    if vitals.heart_rate < hr["critical_low"]:
        critical.append("BRADICARDIA CRÍTICA")
    elif vitals.heart_rate > hr["critical_high"]:
        critical.append("TAQUICARDIA CRÍTICA")

    if vitals.systolic < sbp["critical_low"]:
        critical.append("HIPOTENSÃO SEVERA")
    if vitals.map < mean["critical_low"]:
        critical.append("PAM CRÍTICA")

    if vitals.spo2 < spo2["critical_low"]:
        critical.append("HIPOXEMIA CRÍTICA")

    if vitals.temperature < temp["critical_low"]:
        critical.append("HIPOTERMIA")
    elif vitals.temperature > temp["critical_high"]:
        critical.append("HIPERTERMIA SEVERA")

    if vitals.heart_rate < hr["min"] or vitals.heart_rate > hr["max"]:
        warnings.append("Frequência cardíaca anormal")
    if vitals.spo2 < spo2["min"]:
        warnings.append("Saturação de O2 baixa")
    if vitals.map < mean["min"]:
        warnings.append("PAM abaixo do alvo")

    return critical, warnings
