"""
Database Schemas

Each collection has a document model written as-is to MongoDB, plus the input
models the routes validate form/JSON bodies against. Python attributes are
snake_case; the stored and public keys are camelCase (`imageUrl`,
`parentService`, ...), matching what the site frontend sends and reads.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


ServiceCategory = Literal["residential", "commercial", "both"]
ContactStatus = Literal["new", "read", "replied", "archived"]
AdminRole = Literal["admin", "editor"]


# ---------------------- Admin ----------------------
class Admin(CamelModel):
    full_name: str
    email: EmailStr
    password_hash: str
    role: AdminRole = "admin"
    last_login: Optional[datetime] = None
    password_changed_at: Optional[datetime] = None


class AdminSignup(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: AdminRole = "admin"


class AdminLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AdminProfileUpdate(CamelModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None


class PasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


# ---------------------- Blog ----------------------
class Blog(CamelModel):
    title: str = Field(..., max_length=200)
    description: str
    author: Optional[str] = None
    slug: str
    image_url: str
    author_image_url: Optional[str] = None
    posted_at: datetime


class BlogFields(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    author: Optional[str] = None


class BlogUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = None


# ---------------------- Services ----------------------
class Service(CamelModel):
    title: str = Field(..., max_length=100)
    description: str = Field(..., max_length=500)
    category: ServiceCategory = "both"
    is_featured: bool = False
    slug: str
    image_url: str


class ServiceFields(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    category: ServiceCategory = "both"
    is_featured: bool = False


class ServiceUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    category: Optional[ServiceCategory] = None
    is_featured: Optional[bool] = None


class SubService(CamelModel):
    title: str = Field(..., max_length=100)
    description: Optional[str] = None
    parent_service: str
    image_url: str


class SubServiceFields(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    parent_service: str = Field(..., min_length=1)


class SubServiceUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    parent_service: Optional[str] = None


# ---------------------- People ----------------------
class TeamMember(CamelModel):
    name: str = Field(..., max_length=100)
    role: str = Field(..., max_length=50)
    image_url: str


class TeamMemberFields(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    role: str = Field(..., min_length=1, max_length=50)


class TeamMemberUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[str] = Field(None, min_length=1, max_length=50)


class Founder(CamelModel):
    name: str
    position: str
    title: str
    description: str
    image_url: str


class FounderFields(CamelModel):
    name: str = Field(..., min_length=1)
    position: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


class FounderUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    position: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)


class Testimonial(CamelModel):
    name: str
    stars: int = Field(..., ge=1, le=5)
    description: str
    image_url: str


class TestimonialFields(CamelModel):
    name: str = Field(..., min_length=1)
    stars: int = Field(..., ge=1, le=5)
    description: str = Field(..., min_length=1)


class TestimonialUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    stars: Optional[int] = Field(None, ge=1, le=5)
    description: Optional[str] = Field(None, min_length=1)


# ---------------------- Media-first content ----------------------
class GalleryItem(CamelModel):
    title: str
    image_url: str


class GalleryFields(CamelModel):
    title: str = Field(..., min_length=1)


class GalleryUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)


class Feature(CamelModel):
    title: str
    subtitle: str
    image: str


class FeatureFields(CamelModel):
    title: str = Field(..., min_length=1)
    subtitle: str = Field(..., min_length=1)


class FeatureUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    subtitle: Optional[str] = Field(None, min_length=1)


class Company(CamelModel):
    title: Optional[str] = Field(None, max_length=100)
    image_url: str


class CompanyFields(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)


class CompanyUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)


# ---------------------- Contact ----------------------
class ContactSubmission(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    address: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    country: str = "AU"


class ContactStatusUpdate(CamelModel):
    status: ContactStatus


class SocialLinks(CamelModel):
    facebook: str = ""
    linkedin: str = ""
    twitter: str = ""
    instagram: str = ""


class ContactInfo(CamelModel):
    address: str = ""
    phones: List[str] = Field(default_factory=list)
    email: str = ""
    whatsapp_number: str = ""
    social_links: SocialLinks = Field(default_factory=SocialLinks)


# ---------------------- About page ----------------------
class AboutSection(CamelModel):
    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None


class AboutCategory(CamelModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    sections: List[AboutSection] = Field(default_factory=list)


class AboutPage(CamelModel):
    page_title: Optional[str] = None
    categories: Optional[List[AboutCategory]] = None


class AboutCategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    sections: Optional[List[AboutSection]] = None
