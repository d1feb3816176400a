"""
Obstructive shock: a mechanical block to filling or ejection.

Deteriorates faster than any other archetype. Medical therapy only buys
time; the circulation recovers once the obstruction is removed by the
matching procedure, after which progression follows that procedure's
recovery curve instead.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

from shocksim.core.enums import DefinitiveProcedure, ObstructiveSubtype, ShockType
from shocksim.core.state import HemodynamicState, LabValues, ObstructiveState, VitalSigns
from shocksim.core.utils import clamp, make_rng
from shocksim.physiology.hemodynamics import set_map
from .base import ProgressionFlags, Progression, Response, ShockModel, TreatmentContext
from .recovery_curves import apply_recovery

logger = logging.getLogger(__name__)

# Baseline probability of each procedure's complication.
COMPLICATION_PROBABILITY = {
    DefinitiveProcedure.PERICARDIOCENTESIS: 0.10,
    DefinitiveProcedure.CHEST_TUBE: 0.05,
    DefinitiveProcedure.THROMBOLYSIS: 0.15,
    DefinitiveProcedure.EMBOLECTOMY: 0.05,
}
# Share of thrombolysis bleeds that are intracranial.
ICH_FRACTION = 0.03


class ObstructiveModel(ShockModel):
    shock_type = ShockType.OBSTRUCTIVE

    def progress(self, vitals: VitalSigns, elapsed: float, flags: ProgressionFlags,
                 subtype_state: Optional[ObstructiveState] = None, dt: float = 1.0) -> Progression:
        state = subtype_state if isinstance(subtype_state, ObstructiveState) else ObstructiveState()

        if state.definitive_intervention_done and state.intervention_time is not None:
            minutes = flags.now - state.intervention_time
            return Progression(apply_recovery(vitals, state.intervention_type, minutes, dt))

        pf = elapsed / 60.0
        co_d = -0.45 * pf
        spo2_d = -4.0 * pf
        hr_d = 6.0 * pf
        map_d = -3.0 * pf
        cvp_d = 1.5 * pf

        subtype = state.subtype
        if subtype == ObstructiveSubtype.PULMONARY_EMBOLISM:
            spo2_d -= 2.0
            if state.right_ventricular_dysfunction:
                co_d -= 0.3
        elif subtype == ObstructiveSubtype.CARDIAC_TAMPONADE:
            co_d -= 0.2
            cvp_d += 1.0
            map_d -= 2.0
        elif subtype == ObstructiveSubtype.TENSION_PNEUMOTHORAX:
            spo2_d -= 3.0
            co_d -= 0.4
            if state.mediastinal_shift:
                hr_d += 4.0
        elif subtype == ObstructiveSubtype.AUTO_PEEP:
            spo2_d -= 1.5
            co_d -= 0.25
            cvp_d += 2.0
        elif subtype == ObstructiveSubtype.ABDOMINAL_COMPARTMENT:
            co_d -= 0.3
            cvp_d += 1.8

        if flags.has_vasopressors:
            map_d += 8.0
            co_d += 0.05

        if flags.has_fluids:
            if subtype == ObstructiveSubtype.PULMONARY_EMBOLISM:
                co_d += 0.12
                cvp_d += 0.5
            elif subtype == ObstructiveSubtype.CARDIAC_TAMPONADE:
                # Raises intrapericardial pressure
                co_d -= 0.08
                cvp_d += 1.5
                spo2_d -= 1.0
            else:
                co_d += 0.05
                cvp_d += 1.0

        if flags.ventilated:
            spo2_d += 3.0
            co_d -= 0.15
            cvp_d += 1.2

        new_vitals = replace(
            vitals,
            cardiac_output=clamp(vitals.cardiac_output + co_d * dt, 1.5, 12.0),
            spo2=clamp(vitals.spo2 + spo2_d * dt, 60.0, 100.0),
            heart_rate=clamp(vitals.heart_rate + hr_d * dt, 40.0, 180.0),
            cvp=clamp(vitals.cvp + cvp_d * dt, 0.0, 30.0),
            svr=min(2500.0, vitals.svr + 50.0 * pf * dt),
        )
        new_vitals = set_map(new_vitals, clamp(vitals.map + map_d * dt, 35.0, 140.0))
        return Progression(new_vitals)

    def fluid_effect(self, vitals: VitalSigns, hemo: HemodynamicState, volume: float,
                     context: TreatmentContext) -> Response:
        return Response(vitals={
            "cvp": min(22.0, vitals.cvp + volume / 500.0 * 2.0),
            "cardiac_output": vitals.cardiac_output + volume / 1000.0 * 0.03,
        })


@dataclass
class DefinitiveResult:
    response: Response
    success: bool = True
    complications: List[str] = field(default_factory=list)
    pearls: List[str] = field(default_factory=list)


def definitive_intervention(procedure: DefinitiveProcedure, vitals: VitalSigns, rng=None,
                            complication_scale: float = 1.0) -> DefinitiveResult:
    """
    Immediate effect of a definitive procedure.

    Complication rolls come from `rng` (seed or numpy Generator);
    `complication_scale` multiplies every baseline complication probability.
    """
    rng = make_rng(rng)
    procedure = DefinitiveProcedure(procedure)
    p_complication = min(1.0, COMPLICATION_PROBABILITY.get(procedure, 0.0) * complication_scale)
    result = DefinitiveResult(Response())
    v = result.response.vitals

    if procedure == DefinitiveProcedure.PERICARDIOCENTESIS:
        result.pearls += [
            "Pericardiocentese guiada por eco: ↑segurança, ↓complicações",
            "Via subxifóide preferencial, agulha 16-18G",
            "Remoção de apenas 50-100mL já melhora hemodinâmica significativamente",
        ]
        if rng.random() < p_complication:
            result.success = False
            result.complications.append("Punção miocárdica com sangramento pericárdico iatrogênico")
            v["cardiac_output"] = max(2.0, vitals.cardiac_output - 0.5)
            v["cvp"] = min(25.0, vitals.cvp + 2.0)
        else:
            v["cardiac_output"] = min(6.8, vitals.cardiac_output * 2.2)
            v["cvp"] = max(5.0, vitals.cvp - 12.0)
            v["systolic"] = min(120.0, vitals.systolic + 38.0)
            v["diastolic"] = min(75.0, vitals.diastolic + 18.0)
            v["heart_rate"] = max(75.0, vitals.heart_rate - 35.0)
            v["spo2"] = min(96.0, vitals.spo2 + 8.0)

    elif procedure == DefinitiveProcedure.CHEST_TUBE:
        result.pearls += [
            "Descompressão com agulha: alívio IMEDIATO (não aguardar confirmação radiológica)",
            "2° EIC linha hemiclavicular → depois dreno torácico definitivo",
            "Complicação comum: reexpansão pulmonar pode causar edema de reexpansão",
        ]
        if rng.random() < p_complication:
            # Relief still happens, only less of it
            result.complications.append("Edema pulmonar de reexpansão (não reexpandir muito rápido)")
            v["spo2"] = min(92.0, vitals.spo2 + 4.0)
            v["respiratory_rate"] = max(18.0, vitals.respiratory_rate - 8.0)
            v["cardiac_output"] = min(5.5, vitals.cardiac_output + 1.2)
            v["cvp"] = max(6.0, vitals.cvp - 6.0)
        else:
            v["spo2"] = min(97.0, vitals.spo2 + 13.0)
            v["respiratory_rate"] = max(14.0, vitals.respiratory_rate - 16.0)
            v["cardiac_output"] = min(6.2, vitals.cardiac_output * 1.9)
            v["cvp"] = max(5.0, vitals.cvp - 10.0)
            v["heart_rate"] = max(70.0, vitals.heart_rate - 30.0)

    elif procedure == DefinitiveProcedure.THROMBOLYSIS:
        result.pearls += [
            "Indicação: TEP maciço com instabilidade hemodinâmica",
            "Alteplase 100mg em 2h OU Tenecteplase dose única baseada em peso",
            "Contraindicações: AVC recente, cirurgia recente, sangramento ativo",
            "Melhora gradual em 60-90min (diferente do alívio imediato de tamponade/pneumotórax)",
        ]
        if rng.random() < p_complication:
            if rng.random() < ICH_FRACTION:
                result.success = False
                result.complications.append(
                    "⚠️ HEMORRAGIA INTRACRANIANA - complicação catastrófica da trombólise"
                )
                v["cardiac_output"] = vitals.cardiac_output - 0.3
                v["map"] = vitals.map - 15.0
                return _logged(procedure, result)
            result.complications.append(
                "Sangramento maior (considerar transfusão + reversão com ácido tranexâmico)"
            )
        v["spo2"] = min(93.0, vitals.spo2 + 7.0)
        v["cardiac_output"] = min(5.8, vitals.cardiac_output * 1.6)
        v["svr"] = max(850.0, vitals.svr - 450.0)
        v["cvp"] = max(7.0, vitals.cvp - 8.0)
        v["heart_rate"] = max(80.0, vitals.heart_rate - 25.0)
        v["respiratory_rate"] = max(16.0, vitals.respiratory_rate - 12.0)

    elif procedure == DefinitiveProcedure.EMBOLECTOMY:
        result.pearls += [
            "Embolectomia cirúrgica: indicada se contraindicação à trombólise",
            "Trombólise dirigida por cateter: menor dose sistêmica → ↓risco sangramento",
            "Melhora mais rápida que trombólise sistêmica, mas mais invasivo",
        ]
        if rng.random() < p_complication:
            result.complications.append("Complicação vascular no sítio de acesso ou embolia distal")
        v["cardiac_output"] = min(6.3, vitals.cardiac_output * 1.8)
        v["spo2"] = min(95.0, vitals.spo2 + 10.0)
        v["cvp"] = max(6.0, vitals.cvp - 9.0)
        v["heart_rate"] = max(78.0, vitals.heart_rate - 28.0)
        v["svr"] = max(900.0, vitals.svr - 400.0)

    elif procedure == DefinitiveProcedure.ABDOMINAL_DECOMPRESSION:
        result.pearls += [
            "Síndrome compartimental abdominal: PIA >20mmHg + disfunção orgânica",
            "Laparotomia descompressiva: último recurso após falha medidas conservadoras",
            "Medidas conservadoras: drenagem nasogástrica, procinéticos, diurese",
        ]
        v["cardiac_output"] = min(5.5, vitals.cardiac_output * 1.5)
        v["cvp"] = max(6.0, vitals.cvp - 8.0)
        v["map"] = min(85.0, vitals.map + 15.0)

    elif procedure == DefinitiveProcedure.BRONCHODILATOR_SEDATION:
        result.pearls += [
            "Auto-PEEP/hiperinsuflação dinâmica: ar preso → ↑pressão intratorácica",
            "Tratamento: sedação profunda, ↓FR, ↑tempo expiratório, broncodilatadores",
            "Considerar desconexão temporária do ventilador se colapso iminente",
        ]
        v["cardiac_output"] = min(5.2, vitals.cardiac_output * 1.4)
        v["cvp"] = max(8.0, vitals.cvp - 6.0)
        v["spo2"] = min(94.0, vitals.spo2 + 6.0)
        v["respiratory_rate"] = max(12.0, vitals.respiratory_rate - 15.0)

    return _logged(procedure, result)


def _logged(procedure: DefinitiveProcedure, result: DefinitiveResult) -> DefinitiveResult:
    logger.info("Definitive procedure %s: success=%s", procedure.value, result.success)
    for complication in result.complications:
        logger.info("Procedure complication: %s", complication)
    return result


@dataclass(frozen=True)
class ObstructivePattern:
    suspicion: str          # low, moderate, high or very_high
    likely_etiology: Optional[ObstructiveSubtype]
    clues: List[str]
    diagnostic_tests: List[str]
    score: int = 0


def detect_obstructive_pattern(vitals: VitalSigns,
                               labs: Optional[LabValues] = None) -> ObstructivePattern:
    """Bedside clues pointing to an obstruction and its likely cause."""
    clues: List[str] = []
    tests: List[str] = []
    score = 0

    if vitals.cvp > 15 and vitals.cardiac_output < 3.5:
        clues.append("⚠️ PADRÃO CLÁSSICO: CVP elevada (↑preload aparente) + CO baixo (↓ejeção efetiva)")
        clues.append("Sugere obstrução mecânica impedindo retorno venoso ou ejeção ventricular")
        score += 4
    elif vitals.cvp > 12 and vitals.cardiac_output < 4.5:
        clues.append("CVP moderadamente elevada com débito cardíaco reduzido")
        score += 2

    if vitals.svr > 1500 and vitals.cardiac_output < 4:
        clues.append("RVS elevada (vasoconstrição compensatória) - distingue de choque distributivo")
        score += 2

    if vitals.spo2 < 88 and vitals.respiratory_rate > 28:
        clues.append("🫁 Hipoxemia grave + taquipneia severa → Considerar TEP MACIÇO")
        clues.append("PE maciço: >50% oclusão vascular pulmonar → choque obstrutivo")
        tests.append("Angio-TC tórax (padrão-ouro para diagnóstico de TEP)")
        tests.append("ECG: S1Q3T3, BRD, inversão onda T em V1-V4")
        tests.append("Ecocardiograma: disfunção VD, dilatação VD, McConnell sign")
        score += 3

    if labs is not None and labs.lactate > 6:
        clues.append("Lactato muito elevado sugere hipoperfusão tecidual grave")
        score += 1

    pulse_pressure = vitals.pulse_pressure
    if pulse_pressure < 30 and vitals.cvp > 15:
        clues.append("🫀 Pressão de pulso estreita (<30mmHg) + CVP muito elevada → TAMPONAMENTO CARDÍACO")
        clues.append("Tríade de Beck: hipotensão + turgência jugular + bulhas abafadas")
        tests.append("Ecocardiograma URGENTE: derrame pericárdico, colapso diastólico AD/VD")
        tests.append("Sinais ECG: baixa voltagem, alternância elétrica")
        score += 3

    if vitals.spo2 < 86 and vitals.cvp > 16 and vitals.cardiac_output < 3:
        clues.append("🌬️ Hipoxemia + CVP muito alta + CO muito baixo → Pneumotórax hipertensivo?")
        clues.append("Desvio mediastinal → compressão VCI → ↓retorno venoso")
        tests.append("Exame físico: hipertimpanismo, ↓MV unilateral, desvio traqueia")
        tests.append("Rx tórax: desvio mediastinal, colapso pulmonar")
        tests.append("⚠️ NÃO AGUARDAR IMAGEM SE SUSPEITA ALTA - descompressão urgente!")
        score += 3

    if vitals.cvp > 18 and vitals.respiratory_rate > 30:
        clues.append("CVP muito elevada → Considerar auto-PEEP/hiperinsuflação dinâmica")
        clues.append("Comum em: DPOC grave, asma status, VM com PEEP excessivo")
        tests.append("Verificar curva fluxo-volume no ventilador")
        tests.append("Considerar ↓FR, ↑tempo expiratório, sedação profunda")

    if vitals.heart_rate > 110 and vitals.cardiac_output < 3.5:
        clues.append("Taquicardia compensatória + CO persistentemente baixo (tentativa falha de compensar)")
        score += 1

    etiology = None
    if vitals.spo2 < 88 and vitals.respiratory_rate > 28 and vitals.cvp > 15:
        etiology = ObstructiveSubtype.PULMONARY_EMBOLISM
    elif pulse_pressure < 30 and vitals.cvp > 16:
        etiology = ObstructiveSubtype.CARDIAC_TAMPONADE
    elif vitals.spo2 < 86 and vitals.cvp > 18:
        etiology = ObstructiveSubtype.TENSION_PNEUMOTHORAX

    if score >= 4:
        tests.append("POCUS (Point-of-Care Ultrasound): VCI dilatada, derrame pericárdico, sinal do pulmão")
        tests.append("Gasometria: acidose metabólica + lactato elevado")
        tests.append("⚠️ URGÊNCIA PROCEDURAL: diagnóstico rápido + intervenção definitiva")

    if score >= 7:
        suspicion = "very_high"
    elif score >= 5:
        suspicion = "high"
    elif score >= 3:
        suspicion = "moderate"
    else:
        suspicion = "low"

    return ObstructivePattern(suspicion, etiology, clues, tests, score)


@dataclass(frozen=True)
class PESeverity:
    score: int
    pesi_class: str
    risk_category: str
    recommended_treatment: str
    mortality_risk: str


def pe_severity(vitals: VitalSigns, rv_dysfunction: bool, troponin_elevated: bool,
                bnp_elevated: bool) -> PESeverity:
    """Simplified PESI risk class for pulmonary embolism."""
    if vitals.systolic < 90 or vitals.cardiac_output < 3.5:
        return PESeverity(150, "V", "high",
                          "Trombólise sistêmica OU embolectomia cirúrgica URGENTE",
                          "15-30% mortalidade em 30 dias se não tratado agressivamente")
    if rv_dysfunction and (troponin_elevated or bnp_elevated):
        return PESeverity(100, "III", "intermediate-high",
                          "Anticoagulação plena + considerar terapia de reperfusão se deteriorar",
                          "3-10% mortalidade em 30 dias")
    if rv_dysfunction or troponin_elevated or bnp_elevated:
        return PESeverity(80, "II", "intermediate-low",
                          "Anticoagulação plena, monitorização próxima",
                          "1-3% mortalidade em 30 dias")
    return PESeverity(50, "I", "low",
                      "Anticoagulação, considerar alta precoce ou ambulatorial",
                      "<1% mortalidade em 30 dias")
