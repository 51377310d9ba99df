"""
Service matériaux / Materials service.
Impact environnemental, suggestion de matériau et validation des critères.
Environmental impact, material suggestion and criteria validation.
"""

from circulapp.models.material import Material, MaterialCategory
from circulapp.models.product import ProductCategory


class MaterialValidationError(ValueError):
    """Critères de validation incohérents / Inconsistent validation criteria."""


# 1 arbre absorbe ~22 kg de CO2 par an / 1 tree absorbs ~22 kg CO2 per year
KG_CO2_PER_TREE = 22

# Litres d'eau économisés par kg / Litres of water saved per kg
WATER_SAVINGS_PER_KG = {
    MaterialCategory.PLASTIC: 2.5,
    MaterialCategory.PAPER: 10,
    MaterialCategory.METAL: 8,
    MaterialCategory.GLASS: 0.5,
    MaterialCategory.TEXTILE: 20,
    MaterialCategory.ELECTRONIC: 15,
    MaterialCategory.OTHER: 2,
}
DEFAULT_WATER_PER_KG = 2

# kWh économisés par kg / kWh saved per kg
ENERGY_SAVINGS_PER_KG = {
    MaterialCategory.PLASTIC: 2.0,
    MaterialCategory.PAPER: 1.5,
    MaterialCategory.METAL: 4.0,
    MaterialCategory.GLASS: 0.8,
    MaterialCategory.TEXTILE: 3.0,
    MaterialCategory.ELECTRONIC: 10.0,
    MaterialCategory.OTHER: 1.0,
}
DEFAULT_ENERGY_PER_KG = 1

# Catégorie produit -> famille de matériau probable / Product category -> likely material family
PRODUCT_TO_MATERIAL = {
    ProductCategory.ELECTRONICS: MaterialCategory.ELECTRONIC,
    ProductCategory.FURNITURE: MaterialCategory.WOOD,
    ProductCategory.CLOTHING: MaterialCategory.TEXTILE,
    ProductCategory.BOOKS: MaterialCategory.PAPER,
    ProductCategory.APPLIANCES: MaterialCategory.METAL,
    ProductCategory.KITCHEN: MaterialCategory.METAL,
    ProductCategory.TOYS: MaterialCategory.PLASTIC,
}


def validate_weight_range(min_weight: float, max_weight: float) -> None:
    if min_weight >= max_weight:
        raise MaterialValidationError("Minimum weight must be lower than maximum weight")


def water_savings(category: MaterialCategory, weight: float) -> float:
    return WATER_SAVINGS_PER_KG.get(category, DEFAULT_WATER_PER_KG) * weight


def energy_savings(category: MaterialCategory, weight: float) -> float:
    return ENERGY_SAVINGS_PER_KG.get(category, DEFAULT_ENERGY_PER_KG) * weight


def environmental_impact(material: Material, weight: float) -> dict:
    """Impact environnemental pour un poids donné (kg) / Environmental impact for a weight (kg)."""
    carbon = material.carbon_footprint_saved * weight
    return {
        "carbon_footprint_saved": carbon,
        "recycling_value": material.recycling_value * weight,
        "equivalent_trees": carbon / KG_CO2_PER_TREE,
        "water_saved": water_savings(material.category, weight),
        "energy_saved": energy_savings(material.category, weight),
    }


def impact_recommendations(material: Material, impact: dict) -> list[str]:
    """Conseils affichés avec le calcul d'impact / Tips shown with the impact calculation."""
    tips = []
    if material.compaction_required:
        tips.append("Compact the material before delivery to save transport space")
    if impact["equivalent_trees"] >= 1:
        tips.append(f"Recycling this amount equals the yearly CO2 absorption of {impact['equivalent_trees']:.1f} trees")
    if material.safety_warnings:
        tips.append("Review the safety warnings before processing")
    return tips


def suggested_category(product_category: ProductCategory) -> MaterialCategory:
    return PRODUCT_TO_MATERIAL.get(product_category, MaterialCategory.OTHER)


def suggestion_confidence(product, material: Material) -> int:
    """
    Score de confiance 50-95 d'une suggestion / Confidence score 50-95 of a suggestion.
    +30 si la famille correspond, +5 par mot commun (max +20).
    +30 when the family matches, +5 per shared word (max +20).
    """
    confidence = 50
    if PRODUCT_TO_MATERIAL.get(product.category) == material.category:
        confidence += 30

    product_words = f"{product.title} {product.description}".lower()
    material_words = f"{material.name} {material.description or ''}".lower()
    common = [w for w in product_words.split(" ") if len(w) > 3 and w in material_words]
    confidence += min(len(common) * 5, 20)

    return min(confidence, 95)
